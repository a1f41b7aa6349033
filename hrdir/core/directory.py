from __future__ import annotations

"""
In-memory access-controlled employee directory.

Every account lives in `Directory.users`, keyed by ID. Manager links are stored as
IDs on both sides (`Employee.manager_id` and `Manager.reporting_ids`) and are only
ever changed together. All public operations run under one re-entrant lock.
"""

import math
import threading
from typing import Any, Dict, List, Optional

from hrdir.core.access.audit import AccessAuditLogger
from hrdir.core.access.resolver import AccessResolver
from hrdir.core.config.models import AppConfig
from hrdir.core.errors import (
    AuthenticationFailedError,
    InvalidArgumentError,
    InvalidStateError,
    NoSuchAccountError,
    NotFoundError,
)
from hrdir.core.identity.ids import IdAllocator
from hrdir.core.identity.models import (
    ActiveSession,
    Administrator,
    EmployeeKind,
    Manager,
    StandardEmployee,
    UserKind,
    is_employee,
)
from hrdir.core.identity.passwords import hash_password, require_password, verify_password
from hrdir.core.identity.session import Session


MAX_NAME_LENGTH = 120


class Directory:
    def __init__(
        self,
        default_admin_password: str,
        *,
        cfg: Optional[AppConfig] = None,
        audit: Optional[AccessAuditLogger] = None,
        logger=None,
    ):
        self.cfg = cfg or AppConfig()
        self.logger = logger
        self._lock = threading.RLock()
        self.users: Dict[int, Any] = {}
        self.session = Session()
        self._admin_ids = IdAllocator(start=self.cfg.directory.admin_id_start, step=-1)
        self._employee_ids = IdAllocator(start=self.cfg.directory.employee_id_start, step=1)
        self.access = AccessResolver(
            users=self.users,
            session=self.session,
            audit=audit,
            log_allowed=bool(self.cfg.audit.log_allowed),
            logger=logger,
        )

        admin = Administrator(
            id=self._admin_ids.allocate(self.users),
            name=self.cfg.directory.default_admin_name,
            password_digest=hash_password(default_admin_password, self.cfg.passwords),
        )
        self.users[admin.id] = admin

    def __len__(self) -> int:
        with self._lock:
            return len(self.users)

    # ---------- session ----------
    def log_in(self, user_id: int, password: str) -> None:
        """
        Authenticate and replace the active session. A failed attempt leaves the
        current session untouched.
        """
        with self._lock:
            require_password(password)
            user = self.users.get(_require_id(user_id))
            if user is None:
                raise NoSuchAccountError(f"No user found with ID {user_id}", id=user_id)
            if not verify_password(password, user.password_digest):
                if self.logger:
                    self.logger.warning(f"Failed login for ID {user_id}")
                raise AuthenticationFailedError(f"Incorrect password for {user.name} (ID: {user_id})", id=user_id)
            self.session.start(user_id=user.id, kind=UserKind(user.kind))
            if self.logger:
                self.logger.info(f"Logged in: ID {user.id} ({user.user_type})")

    def log_out(self) -> None:
        with self._lock:
            uid = self.session.user_id
            self.session.end()
            if uid is not None and self.logger:
                self.logger.info(f"Logged out: ID {uid}")

    def current_user(self) -> Optional[Any]:
        with self._lock:
            uid = self.session.user_id
            if uid is None:
                return None
            user = self.users.get(uid)
            return None if user is None else user.model_copy(deep=True)

    def active_session(self) -> Optional[ActiveSession]:
        """
        Current session view; `kind` reflects the live record (promotion/demotion).
        """
        with self._lock:
            s = self.session.active()
            if s is None:
                return None
            user = self.users.get(s.user_id)
            if user is None:
                return None
            return s.model_copy(update={"kind": UserKind(user.kind)})

    # ---------- accounts ----------
    def add_employee(
        self,
        employee_type: Any,
        name: str,
        password: str,
        salary: float = 0.0,
        vacation_balance: int = 0,
        annual_bonus: float = 0.0,
        in_human_resources: bool = False,
    ) -> Any:
        with self._lock:
            self.access.verify_admin()
            require_password(password)
            kind = EmployeeKind.parse(employee_type)
            _require_name(name)
            salary = _non_negative_amount("Salary", salary)
            vacation_balance = _non_negative_count("Vacation Balance", vacation_balance)
            annual_bonus = _non_negative_amount("Annual Bonus", annual_bonus)
            if not isinstance(in_human_resources, bool):
                raise InvalidArgumentError("HR status must be a boolean.")

            cls = Manager if kind == EmployeeKind.manager else StandardEmployee
            emp = cls(
                id=self._employee_ids.allocate(self.users),
                name=name,
                password_digest=hash_password(password, self.cfg.passwords),
                salary=salary,
                vacation_balance=vacation_balance,
                annual_bonus=annual_bonus,
                in_human_resources=in_human_resources,
            )
            self.users[emp.id] = emp
            if self.logger:
                self.logger.info(f"Added {emp.user_type}: ID {emp.id}")
            return emp.model_copy(deep=True)

    def add_administrator(self, name: str, password: str) -> Administrator:
        with self._lock:
            self.access.verify_admin()
            require_password(password)
            _require_name(name)
            admin = Administrator(
                id=self._admin_ids.allocate(self.users),
                name=name,
                password_digest=hash_password(password, self.cfg.passwords),
            )
            self.users[admin.id] = admin
            if self.logger:
                self.logger.info(f"Added Administrator: ID {admin.id}")
            return admin.model_copy(deep=True)

    def remove_user(self, user_id: int) -> Any:
        """
        Remove an account and dissolve its manager links in both directions.
        The signed-in account cannot remove itself.
        """
        with self._lock:
            self.access.verify_admin()
            if _require_id(user_id) not in self.users:
                raise NotFoundError(f"No user with ID {user_id} found.", id=user_id)
            if user_id == self.session.user_id:
                raise InvalidStateError("Can't remove currently signed in user.", id=user_id)

            removed = self.users.pop(user_id)
            if is_employee(removed):
                self._detach_from_manager(removed)
            if isinstance(removed, Manager):
                for rid in sorted(removed.reporting_ids):
                    report = self.users.get(rid)
                    if is_employee(report) and report.manager_id == removed.id:
                        report.manager_id = None
                removed.reporting_ids.clear()
            if self.logger:
                self.logger.info(f"Removed {removed.user_type}: ID {removed.id}")
            return removed

    def get_users(self) -> Dict[int, Any]:
        with self._lock:
            self.access.verify_admin()
            return {uid: u.model_copy(deep=True) for uid, u in sorted(self.users.items())}

    def ids(self) -> List[int]:
        with self._lock:
            self.access.verify_admin()
            return sorted(self.users)

    def reset_ids(self, *, admin_next: Optional[int] = None, employee_next: Optional[int] = None) -> None:
        """
        Reposition the ID counters (test and import support). IDs already in use are
        never handed out again; allocation fails instead.
        """
        with self._lock:
            if admin_next is not None:
                if int(admin_next) > 0:
                    raise InvalidArgumentError("Administrator IDs must be zero or negative.")
                self._admin_ids.reset(admin_next)
            if employee_next is not None:
                if int(employee_next) < 1:
                    raise InvalidArgumentError("Employee IDs must be positive.")
                self._employee_ids.reset(employee_next)

    def apply_config(self, cfg: AppConfig) -> None:
        """
        Apply a reloaded configuration to the running directory.

        Only `passwords` (used for digests created from now on) and
        `audit.log_allowed` take effect live; the other settings are read when a
        directory is built.
        """
        with self._lock:
            self.access.verify_admin()
            audit = self.cfg.audit.model_copy(update={"log_allowed": cfg.audit.log_allowed})
            self.cfg = self.cfg.model_copy(update={"passwords": cfg.passwords, "audit": audit})
            self.access.log_allowed = bool(cfg.audit.log_allowed)
            if self.logger:
                self.logger.info(f"Config applied: log_allowed={self.access.log_allowed} scrypt_n={cfg.passwords.n}")

    # ---------- relationships ----------
    def link_employee_and_manager(self, employee_id: int, manager_id: int) -> None:
        with self._lock:
            self.access.verify_admin()
            emp = self.users.get(_require_id(employee_id))
            mgr = self.users.get(_require_id(manager_id))
            if emp is None or mgr is None:
                raise NotFoundError("Both IDs must correspond to valid users.", employee_id=employee_id, manager_id=manager_id)
            if not isinstance(mgr, Manager) or not is_employee(emp):
                raise InvalidStateError("Must provide one Manager and one employee.", employee_id=employee_id, manager_id=manager_id)
            if employee_id == manager_id:
                raise InvalidStateError("A manager cannot report to themselves.", id=employee_id)

            self._detach_from_manager(emp)
            emp.manager_id = mgr.id
            mgr.reporting_ids.add(emp.id)
            if self.logger:
                self.logger.info(f"Linked employee {emp.id} to manager {mgr.id}")

    def unlink_employee(self, employee_id: int) -> Optional[int]:
        """Detach an employee from their manager. Returns the previous manager ID."""
        with self._lock:
            self.access.verify_admin()
            emp = self._find(employee_id)
            if not is_employee(emp):
                raise InvalidStateError(f"This type of user ({emp.user_type}) can not have a manager.", id=employee_id)
            old = self._detach_from_manager(emp)
            if old is not None and self.logger:
                self.logger.info(f"Unlinked employee {emp.id} from manager {old}")
            return old

    def promote_to_manager(self, user_id: int) -> None:
        with self._lock:
            self.access.verify_admin()
            user = self._find(user_id)
            if isinstance(user, Manager):
                raise InvalidStateError(f"User {user_id} is already a Manager.", id=user_id)
            if not isinstance(user, StandardEmployee):
                raise InvalidStateError(f"This type of user ({user.user_type}) can not be promoted.", id=user_id)
            self.users[user_id] = Manager.from_employee(user)
            if self.logger:
                self.logger.info(f"Promoted ID {user_id} to Manager")

    def demote_to_standard(self, user_id: int) -> None:
        """
        Demote a manager. Their reports must be unlinked first.
        """
        with self._lock:
            self.access.verify_admin()
            user = self._find(user_id)
            if isinstance(user, StandardEmployee):
                raise InvalidStateError(f"User {user_id} is already a Standard Employee.", id=user_id)
            if not isinstance(user, Manager):
                raise InvalidStateError(f"This type of user ({user.user_type}) can not be demoted.", id=user_id)
            if user.reporting_ids:
                raise InvalidStateError(
                    f"Manager {user_id} still has {len(user.reporting_ids)} reporting employee(s); unlink them first.",
                    id=user_id,
                    reporting_ids=sorted(user.reporting_ids),
                )
            self.users[user_id] = StandardEmployee.from_manager(user)
            if self.logger:
                self.logger.info(f"Demoted ID {user_id} to Standard Employee")

    def get_manager(self, employee_id: int) -> int:
        with self._lock:
            emp = self._readable_employee(employee_id, "manager")
            if emp.manager_id is None:
                raise InvalidStateError("This user has no assigned manager.", id=employee_id)
            return emp.manager_id

    def get_reporting_employees(self, manager_id: int) -> List[int]:
        with self._lock:
            user = self._find(manager_id)
            self.access.verify_read_access(manager_id)
            if not isinstance(user, Manager):
                raise InvalidStateError(f"This type of user ({user.user_type}) has no reporting employees.", id=manager_id)
            return sorted(user.reporting_ids)

    # ---------- HR flag ----------
    def change_hr_status(self, user_id: int, in_human_resources: bool) -> None:
        with self._lock:
            self.access.verify_admin()
            user = self._find(user_id)
            if not is_employee(user):
                raise InvalidStateError(f"This type of user ({user.user_type}) can not be in Human Resources.", id=user_id)
            if not isinstance(in_human_resources, bool):
                raise InvalidArgumentError("HR status must be a boolean.")
            user.in_human_resources = in_human_resources
            if self.logger:
                self.logger.info(f"HR status for ID {user_id} set to {in_human_resources}")

    def is_in_human_resources(self, user_id: int) -> bool:
        with self._lock:
            user = self._find(user_id)
            self.access.verify_read_access(user_id)
            return bool(is_employee(user) and user.in_human_resources)

    # ---------- compensation ----------
    def get_salary(self, user_id: int) -> float:
        with self._lock:
            return self._readable_employee(user_id, "salary").salary

    def set_salary(self, user_id: int, salary: float) -> None:
        with self._lock:
            emp = self._writable_employee(user_id, "salary")
            emp.change_salary(_non_negative_amount("Salary", salary))

    def get_salary_history(self, user_id: int) -> List[float]:
        with self._lock:
            return list(self._readable_employee(user_id, "salary history").salary_history)

    def get_vacation_balance(self, user_id: int) -> int:
        with self._lock:
            return self._readable_employee(user_id, "vacation balance").vacation_balance

    def set_vacation_balance(self, user_id: int, vacation_balance: int) -> None:
        with self._lock:
            emp = self._writable_employee(user_id, "vacation balance")
            emp.vacation_balance = _non_negative_count("Vacation Balance", vacation_balance)

    def get_annual_bonus(self, user_id: int) -> float:
        with self._lock:
            return self._readable_employee(user_id, "annual bonus").annual_bonus

    def set_annual_bonus(self, user_id: int, annual_bonus: float) -> None:
        with self._lock:
            emp = self._writable_employee(user_id, "annual bonus")
            emp.annual_bonus = _non_negative_amount("Annual Bonus", annual_bonus)

    # ---------- internals ----------
    def _find(self, user_id: int) -> Any:
        user = self.users.get(_require_id(user_id))
        if user is None:
            raise NotFoundError(f"No user found with ID {user_id}", id=user_id)
        return user

    # lookup -> access check -> variant check; the order keeps error messages stable
    def _readable_employee(self, user_id: int, what: str) -> Any:
        user = self._find(user_id)
        self.access.verify_read_access(user_id)
        return _require_employee(user, what)

    def _writable_employee(self, user_id: int, what: str) -> Any:
        user = self._find(user_id)
        self.access.verify_write_access(user_id)
        return _require_employee(user, what)

    def _detach_from_manager(self, emp: Any) -> Optional[int]:
        old_id = emp.manager_id
        if old_id is None:
            return None
        old = self.users.get(old_id)
        if isinstance(old, Manager):
            old.reporting_ids.discard(emp.id)
        emp.manager_id = None
        return old_id


def build_directory(default_admin_password: str, *, cfg: Optional[AppConfig] = None, logger=None) -> Directory:
    """
    Directory wired from configuration: access audit trail per `cfg.audit`.
    """
    cfg = cfg or AppConfig()
    audit = None
    if cfg.audit.enabled:
        audit = AccessAuditLogger(path=cfg.audit.path, keep_last=cfg.audit.keep_last)
    return Directory(default_admin_password, cfg=cfg, audit=audit, logger=logger)


def _require_employee(user: Any, what: str) -> Any:
    if not is_employee(user):
        raise InvalidStateError(f"This type of user ({user.user_type}) does not have a {what}.", id=user.id)
    return user


def _require_id(user_id: Any) -> int:
    # bool is an int subclass and True == 1
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise InvalidArgumentError("User ID must be a whole number.", id=repr(user_id))
    return user_id


def _require_name(name: Any) -> None:
    if not isinstance(name, str):
        raise InvalidArgumentError("Name cannot be null.")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidArgumentError(f"Name must be at most {MAX_NAME_LENGTH} characters.")


def _non_negative_amount(label: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"{label} must be a number.", field=label)
    if value < 0:
        raise InvalidArgumentError(f"{label} must be non-negative.", field=label)
    try:
        amount = float(value)
    except OverflowError as e:
        raise InvalidArgumentError(f"{label} is too large.", field=label) from e
    if not math.isfinite(amount):
        raise InvalidArgumentError(f"{label} must be a finite number.", field=label)
    return amount


def _non_negative_count(label: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{label} must be a whole number.", field=label)
    if value < 0:
        raise InvalidArgumentError(f"{label} must be non-negative.", field=label)
    return value
