from __future__ import annotations

import json

import pytest

from hrdir.core.access.audit import AccessAuditLogger
from hrdir.core.config.manager import ConfigManager
from hrdir.core.config.paths import ConfigFsPaths
from hrdir.core.directory import Directory
from hrdir.core.error_reporter import ErrorReporter
from hrdir.core.shell import DirectoryShell


@pytest.fixture
def shell(fast_cfg, tmp_path):
    d = Directory("Password", cfg=fast_cfg)
    reporter = ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl"))
    return DirectoryShell(directory=d, error_reporter=reporter, prompt_password=lambda _p: "Password")


def test_login_prompts_for_password(shell):
    res = shell.handle("login 0")
    assert res.ok
    assert res.reply == "Signed in as Default Admin (ID 0, Administrator)."
    assert shell.handle("whoami").reply == "Default Admin (ID 0, Administrator)"
    assert shell.handle("/logout").reply == "Signed out."
    assert shell.handle("whoami").reply == "Not signed in."


def test_manager_flow(shell):
    shell.handle("login 0 Password")
    assert shell.handle('add-employee standard "Ann Lee" pa 50').reply == "Added Standard Employee Ann Lee with ID 1."
    assert shell.handle("add-employee manager Bob pb 80 10 2 yes").reply == "Added Manager Bob with ID 2."
    assert shell.handle("link 1 2").reply == "Employee 1 now reports to manager 2."
    assert shell.handle("reports 2").reply == "1"
    assert shell.handle("manager 1").reply == "2"

    shell.handle("login 2 pb")
    assert shell.handle("set-salary 1 60").reply == "Salary updated."
    assert shell.handle("salary 1").reply == "60.00"
    assert shell.handle("history 1").reply == "50.00"
    res = shell.handle("set-salary 2 1000")
    assert res.ok is False
    assert "does not have permission" in res.reply


def test_errors_are_reported(shell, tmp_path):
    res = shell.handle("salary 1")
    assert res.ok is False
    assert res.reply == "No user found with ID 1"
    tail = shell.error_reporter.tail(1)
    assert tail[0]["subsystem"] == "shell.salary"
    assert tail[0]["trace_id"] == "anonymous"


def test_argument_errors(shell):
    shell.handle("login 0 Password")
    assert shell.handle("remove").reply == "Usage: remove <id>"
    assert shell.handle("remove abc").reply == "id must be a whole number."
    assert shell.handle("hr 0 maybe").reply == "hr must be yes or no."
    assert shell.handle("add-employee intern X pw").reply == "Invalid employee type provided."
    assert shell.handle('login "unterminated').ok is False


def test_unknown_and_exit(shell):
    assert shell.handle("frobnicate").reply.startswith("Unknown command")
    assert shell.handle("").reply == ""
    assert "Commands:" in shell.handle("help").reply
    res = shell.handle("quit")
    assert res.exit is True and res.reply == "Bye."


def test_list_and_remove(shell):
    shell.handle("login 0 Password")
    shell.handle("add-admin Second pw")
    shell.handle("add-employee standard Ann pa")
    listing = shell.handle("list").reply.splitlines()
    assert len(listing) == 3
    assert "Second" in listing[0]
    assert shell.handle("remove 1").reply == "Removed Standard Employee Ann (ID 1)."
    assert shell.handle("remove 0").reply == "Can't remove currently signed in user."


def _broken_audit_shell(fast_cfg, tmp_path, *, reporter):
    # an audit path that is a directory makes every denial fail to write
    d = Directory("Password", cfg=fast_cfg, audit=AccessAuditLogger(path=str(tmp_path)))
    sh = DirectoryShell(directory=d, error_reporter=reporter)
    sh.handle("login 0 Password")
    sh.handle("add-employee standard Ann pa")
    sh.handle("add-employee standard Bob pb")
    sh.handle("login 1 pa")
    return sh


def test_unexpected_errors_do_not_escape(fast_cfg, tmp_path):
    reporter = ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl"))
    sh = _broken_audit_shell(fast_cfg, tmp_path, reporter=reporter)
    res = sh.handle("salary 2")
    assert res.ok is False
    assert res.reply == "Something went wrong."
    last = reporter.tail(1)[0]
    assert last["error_code"] == "unknown_error"
    assert last["subsystem"] == "shell.salary"
    assert last["trace_id"] != "anonymous"
    # the shell keeps working afterwards
    assert sh.handle("salary 1").reply == "0.00"


def test_unexpected_errors_without_reporter(fast_cfg, tmp_path):
    sh = _broken_audit_shell(fast_cfg, tmp_path, reporter=None)
    res = sh.handle("salary 2")
    assert res.ok is False
    assert res.reply == "Something went wrong."


def _config_shell(fast_cfg, tmp_path):
    cm = ConfigManager(fs=ConfigFsPaths(str(tmp_path)))
    cm.load_all()
    d = Directory("Password", cfg=fast_cfg)
    return DirectoryShell(directory=d, config=cm), cm


def test_reload_config_applies_log_allowed(fast_cfg, tmp_path):
    sh, cm = _config_shell(fast_cfg, tmp_path)
    sh.handle("login 0 Password")
    assert sh.handle("reload-config").reply == "Configuration unchanged."

    audit = cm.get().audit.model_dump()
    audit["log_allowed"] = True
    with open(cm.fs.config_file("audit.json"), "w", encoding="utf-8") as f:
        json.dump(audit, f)
    assert sh.handle("reload-config").reply == "Configuration reloaded: audit.json."
    assert sh.directory.access.log_allowed is True
    assert sh.directory.cfg.audit.log_allowed is True
    # other audit settings keep their built-in values
    assert sh.directory.cfg.audit.path == fast_cfg.audit.path


def test_reload_config_requires_admin(fast_cfg, tmp_path):
    sh, cm = _config_shell(fast_cfg, tmp_path)
    sh.handle("login 0 Password")
    sh.handle("add-employee standard Ann pa")
    sh.handle("login 1 pa")
    with open(cm.fs.config_file("audit.json"), "w", encoding="utf-8") as f:
        json.dump({"log_allowed": True}, f)
    res = sh.handle("reload-config")
    assert res.ok is False
    assert "does not have permission" in res.reply
    assert cm.get().audit.log_allowed is False


def test_reload_config_rejects_invalid_files(fast_cfg, tmp_path):
    sh, cm = _config_shell(fast_cfg, tmp_path)
    sh.handle("login 0 Password")
    with open(cm.fs.config_file("passwords.json"), "w", encoding="utf-8") as f:
        json.dump({"n": 3}, f)
    res = sh.handle("reload-config")
    assert res.ok is False
    assert res.reply.startswith("Invalid configuration")
    assert sh.directory.cfg.passwords.n == fast_cfg.passwords.n


def test_reload_config_unavailable_without_manager(shell):
    shell.handle("login 0")
    assert shell.handle("reload-config").reply == "Configuration reload is not available."
