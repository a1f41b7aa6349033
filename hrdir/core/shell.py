from __future__ import annotations

import getpass
import shlex
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from hrdir.core.config.manager import ConfigManager
from hrdir.core.directory import Directory
from hrdir.core.error_reporter import ErrorReporter, normalize_exception
from hrdir.core.errors import HRError, InvalidArgumentError, InvalidStateError


HELP_TEXT = """Commands:
  login <id> [password]         sign in (prompts for the password if omitted)
  logout                        sign out
  whoami                        show the signed-in account
  add-employee <standard|manager> <name> <password> [salary] [vacation] [bonus] [hr yes|no]
  add-admin <name> <password>
  remove <id>
  link <employee_id> <manager_id>
  unlink <employee_id>
  promote <id> | demote <id>
  hr <id> <yes|no>
  salary <id> | set-salary <id> <amount> | history <id>
  vacation <id> | set-vacation <id> <days>
  bonus <id> | set-bonus <id> <amount>
  manager <id> | reports <id>
  list
  reload-config                 re-read config/ (applies scrypt params and audit.log_allowed)
  exit"""


@dataclass(frozen=True)
class ShellResult:
    reply: str
    exit: bool = False
    ok: bool = True


class DirectoryShell:
    """
    Line-oriented command interpreter over a `Directory`.

    Every error raised by a command is reported and turned into a user message;
    nothing escapes `handle`.
    """

    def __init__(
        self,
        *,
        directory: Directory,
        error_reporter: Optional[ErrorReporter] = None,
        config: Optional[ConfigManager] = None,
        prompt_password: Callable[[str], str] = getpass.getpass,
    ):
        self.directory = directory
        self.error_reporter = error_reporter
        self.config = config
        self.prompt_password = prompt_password
        self._commands: Dict[str, Callable[[List[str]], str]] = {
            "help": self._help,
            "login": self._login,
            "logout": self._logout,
            "whoami": self._whoami,
            "add-employee": self._add_employee,
            "add-admin": self._add_admin,
            "remove": self._remove,
            "link": self._link,
            "unlink": self._unlink,
            "promote": self._promote,
            "demote": self._demote,
            "hr": self._hr,
            "salary": self._salary,
            "set-salary": self._set_salary,
            "history": self._history,
            "vacation": self._vacation,
            "set-vacation": self._set_vacation,
            "bonus": self._bonus,
            "set-bonus": self._set_bonus,
            "manager": self._manager,
            "reports": self._reports,
            "list": self._list,
            "reload-config": self._reload_config,
        }

    def handle(self, text: str) -> ShellResult:
        try:
            parts = shlex.split(text or "")
        except ValueError as e:
            return ShellResult(reply=f"Unable to parse command: {e}", ok=False)
        if not parts:
            return ShellResult(reply="")
        cmd = parts[0].lstrip("/").lower()
        if cmd in {"exit", "quit"}:
            return ShellResult(reply="Bye.", exit=True)
        fn = self._commands.get(cmd)
        if fn is None:
            return ShellResult(reply="Unknown command. Type 'help' for a list of commands.", ok=False)
        try:
            return ShellResult(reply=fn(parts[1:]))
        except HRError as e:
            self._report(e, cmd)
            return ShellResult(reply=e.user_message, ok=False)
        except Exception as e:  # noqa: BLE001
            if self.error_reporter is not None:
                err = self.error_reporter.report_exception(e, trace_id=self._trace_id(), subsystem=f"shell.{cmd}")
            else:
                err = normalize_exception(e, context={})
            return ShellResult(reply=err.user_message, ok=False)

    # ---- commands ----
    def _help(self, _args: List[str]) -> str:
        return HELP_TEXT

    def _login(self, args: List[str]) -> str:
        _arity(args, 1, 2, "login <id> [password]")
        uid = _int_arg(args[0], "id")
        password = args[1] if len(args) > 1 else self.prompt_password("Password: ")
        self.directory.log_in(uid, password)
        return f"Signed in as {self._describe_current()}."

    def _logout(self, args: List[str]) -> str:
        _arity(args, 0, 0, "logout")
        self.directory.log_out()
        return "Signed out."

    def _whoami(self, args: List[str]) -> str:
        _arity(args, 0, 0, "whoami")
        if self.directory.current_user() is None:
            return "Not signed in."
        return self._describe_current()

    def _add_employee(self, args: List[str]) -> str:
        _arity(args, 3, 7, "add-employee <standard|manager> <name> <password> [salary] [vacation] [bonus] [hr yes|no]")
        kind = {"standard": "Standard Employee", "manager": "Manager"}.get(args[0].lower(), args[0])
        salary = _float_arg(args[3], "salary") if len(args) > 3 else 0.0
        vacation = _int_arg(args[4], "vacation") if len(args) > 4 else 0
        bonus = _float_arg(args[5], "bonus") if len(args) > 5 else 0.0
        in_hr = _bool_arg(args[6], "hr") if len(args) > 6 else False
        emp = self.directory.add_employee(kind, args[1], args[2], salary, vacation, bonus, in_hr)
        return f"Added {emp.user_type} {emp.name} with ID {emp.id}."

    def _add_admin(self, args: List[str]) -> str:
        _arity(args, 2, 2, "add-admin <name> <password>")
        admin = self.directory.add_administrator(args[0], args[1])
        return f"Added Administrator {admin.name} with ID {admin.id}."

    def _remove(self, args: List[str]) -> str:
        _arity(args, 1, 1, "remove <id>")
        removed = self.directory.remove_user(_int_arg(args[0], "id"))
        return f"Removed {removed.user_type} {removed.name} (ID {removed.id})."

    def _link(self, args: List[str]) -> str:
        _arity(args, 2, 2, "link <employee_id> <manager_id>")
        eid, mid = _int_arg(args[0], "employee_id"), _int_arg(args[1], "manager_id")
        self.directory.link_employee_and_manager(eid, mid)
        return f"Employee {eid} now reports to manager {mid}."

    def _unlink(self, args: List[str]) -> str:
        _arity(args, 1, 1, "unlink <employee_id>")
        eid = _int_arg(args[0], "employee_id")
        old = self.directory.unlink_employee(eid)
        if old is None:
            return f"Employee {eid} had no manager."
        return f"Employee {eid} no longer reports to manager {old}."

    def _promote(self, args: List[str]) -> str:
        _arity(args, 1, 1, "promote <id>")
        uid = _int_arg(args[0], "id")
        self.directory.promote_to_manager(uid)
        return f"User {uid} promoted to Manager."

    def _demote(self, args: List[str]) -> str:
        _arity(args, 1, 1, "demote <id>")
        uid = _int_arg(args[0], "id")
        self.directory.demote_to_standard(uid)
        return f"User {uid} demoted to Standard Employee."

    def _hr(self, args: List[str]) -> str:
        _arity(args, 2, 2, "hr <id> <yes|no>")
        uid, flag = _int_arg(args[0], "id"), _bool_arg(args[1], "hr")
        self.directory.change_hr_status(uid, flag)
        return f"User {uid} is {'now' if flag else 'no longer'} in Human Resources."

    def _salary(self, args: List[str]) -> str:
        _arity(args, 1, 1, "salary <id>")
        return f"{self.directory.get_salary(_int_arg(args[0], 'id')):.2f}"

    def _set_salary(self, args: List[str]) -> str:
        _arity(args, 2, 2, "set-salary <id> <amount>")
        self.directory.set_salary(_int_arg(args[0], "id"), _float_arg(args[1], "amount"))
        return "Salary updated."

    def _history(self, args: List[str]) -> str:
        _arity(args, 1, 1, "history <id>")
        hist = self.directory.get_salary_history(_int_arg(args[0], "id"))
        if not hist:
            return "No salary history."
        return ", ".join(f"{x:.2f}" for x in hist)

    def _vacation(self, args: List[str]) -> str:
        _arity(args, 1, 1, "vacation <id>")
        return str(self.directory.get_vacation_balance(_int_arg(args[0], "id")))

    def _set_vacation(self, args: List[str]) -> str:
        _arity(args, 2, 2, "set-vacation <id> <days>")
        self.directory.set_vacation_balance(_int_arg(args[0], "id"), _int_arg(args[1], "days"))
        return "Vacation balance updated."

    def _bonus(self, args: List[str]) -> str:
        _arity(args, 1, 1, "bonus <id>")
        return f"{self.directory.get_annual_bonus(_int_arg(args[0], 'id')):.2f}"

    def _set_bonus(self, args: List[str]) -> str:
        _arity(args, 2, 2, "set-bonus <id> <amount>")
        self.directory.set_annual_bonus(_int_arg(args[0], "id"), _float_arg(args[1], "amount"))
        return "Annual bonus updated."

    def _manager(self, args: List[str]) -> str:
        _arity(args, 1, 1, "manager <id>")
        return str(self.directory.get_manager(_int_arg(args[0], "id")))

    def _reports(self, args: List[str]) -> str:
        _arity(args, 1, 1, "reports <id>")
        ids = self.directory.get_reporting_employees(_int_arg(args[0], "id"))
        return ", ".join(str(i) for i in ids) if ids else "No reporting employees."

    def _list(self, args: List[str]) -> str:
        _arity(args, 0, 0, "list")
        rows = []
        for uid, u in self.directory.get_users().items():
            rows.append(f"{uid:>5} | {u.user_type:17s} | {u.name}")
        return "\n".join(rows)

    def _reload_config(self, args: List[str]) -> str:
        _arity(args, 0, 0, "reload-config")
        if self.config is None:
            raise InvalidStateError("Configuration reload is not available.")
        # only an administrator may swap the live configuration
        self.directory.access.verify_admin()
        diff = self.config.reload_if_changed()
        if not diff.changed_files:
            return "Configuration unchanged."
        self.directory.apply_config(self.config.get())
        return f"Configuration reloaded: {', '.join(diff.names)}."

    # ---- helpers ----
    def _describe_current(self) -> str:
        u = self.directory.current_user()
        if u is None:
            return "nobody"
        return f"{u.name} (ID {u.id}, {u.user_type})"

    def _report(self, err: HRError, cmd: str) -> None:
        if self.error_reporter is None:
            return
        self.error_reporter.write_error(err, trace_id=self._trace_id(), subsystem=f"shell.{cmd}")

    def _trace_id(self) -> str:
        s = self.directory.active_session()
        return s.session_id if s is not None else "anonymous"


def _arity(args: List[str], lo: int, hi: int, usage: str) -> None:
    if not (lo <= len(args) <= hi):
        raise InvalidArgumentError(f"Usage: {usage}")


def _int_arg(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidArgumentError(f"{name} must be a whole number.") from e


def _float_arg(raw: str, name: str) -> float:
    try:
        return float(raw)
    except ValueError as e:
        raise InvalidArgumentError(f"{name} must be a number.") from e


def _bool_arg(raw: str, name: str) -> bool:
    v = str(raw).strip().lower()
    if v in {"yes", "y", "true", "on", "1"}:
        return True
    if v in {"no", "n", "false", "off", "0"}:
        return False
    raise InvalidArgumentError(f"{name} must be yes or no.")
