from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from hrdir.core.errors import InvalidArgumentError


def _iso_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class UserKind(str, Enum):
    administrator = "administrator"
    standard = "standard"
    manager = "manager"


class EmployeeKind(str, Enum):
    """Employee type tags accepted by `Directory.add_employee`."""

    standard = "Standard Employee"
    manager = "Manager"

    @classmethod
    def parse(cls, raw: Any) -> "EmployeeKind":
        if isinstance(raw, EmployeeKind):
            return raw
        # accept the record tags too
        if raw == UserKind.standard.value:
            return cls.standard
        if raw == UserKind.manager.value:
            return cls.manager
        for k in cls:
            if raw == k.value:
                return k
        raise InvalidArgumentError("Invalid employee type provided.", employee_type=str(raw))


class KdfParams(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Literal["scrypt"] = "scrypt"
    n: int
    r: int
    p: int


class PasswordDigest(BaseModel):
    """Salted scrypt digest. Comparable token only; the password is never kept."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    salt: str
    digest: str
    kdf: KdfParams


class Administrator(BaseModel):
    """
    Utility account with full control over the directory.

    Administrators are not employees: they have no compensation, HR flag or manager.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    kind: Literal["administrator"] = "administrator"
    id: int = Field(le=0, frozen=True)
    name: str = Field(max_length=120)
    password_digest: PasswordDigest
    created_at: str = Field(default_factory=_iso_now)

    @property
    def user_type(self) -> str:
        return "Administrator"


class _EmployeeRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: int = Field(ge=1, frozen=True)
    name: str = Field(max_length=120)
    password_digest: PasswordDigest
    salary: float = Field(default=0.0, ge=0)
    # prior salaries, oldest first
    salary_history: List[float] = Field(default_factory=list)
    vacation_balance: int = Field(default=0, ge=0)
    annual_bonus: float = Field(default=0.0, ge=0)
    in_human_resources: bool = False
    manager_id: Optional[int] = None
    created_at: str = Field(default_factory=_iso_now)

    def change_salary(self, salary: float) -> None:
        self.salary_history.append(self.salary)
        self.salary = salary


class StandardEmployee(_EmployeeRecord):
    kind: Literal["standard"] = "standard"

    @property
    def user_type(self) -> str:
        return EmployeeKind.standard.value

    @classmethod
    def from_manager(cls, mgr: "Manager") -> "StandardEmployee":
        data = mgr.model_dump(exclude={"kind", "reporting_ids"})
        return cls(**data)


class Manager(_EmployeeRecord):
    kind: Literal["manager"] = "manager"
    reporting_ids: Set[int] = Field(default_factory=set)

    @property
    def user_type(self) -> str:
        return EmployeeKind.manager.value

    @classmethod
    def from_employee(cls, emp: StandardEmployee) -> "Manager":
        data = emp.model_dump(exclude={"kind"})
        return cls(**data)

    def manages(self, employee_id: int) -> bool:
        return employee_id in self.reporting_ids


def is_employee(user: Any) -> bool:
    return isinstance(user, (StandardEmployee, Manager))


class ActiveSession(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: int
    kind: UserKind
    started_at: str = Field(default_factory=_iso_now)
