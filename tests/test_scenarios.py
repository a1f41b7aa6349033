from __future__ import annotations

import threading

import pytest

from hrdir.core.directory import Directory, build_directory
from hrdir.core.errors import AuthenticationFailedError, NotFoundError, PermissionDeniedError


def test_manager_sets_report_salary_end_to_end(fast_cfg):
    d = Directory("P", cfg=fast_cfg)
    d.log_in(0, "P")
    e = d.add_employee("Standard Employee", "E", "pe", 0)
    m = d.add_employee("Manager", "M", "pm", 0)
    d.link_employee_and_manager(e.id, m.id)
    d.log_out()

    d.log_in(m.id, "pm")
    d.set_salary(e.id, 100)
    assert d.get_salary(e.id) == 100.0
    with pytest.raises(PermissionDeniedError):
        d.set_salary(m.id, 100)


def test_remove_unlinked_user_returns_record(directory):
    e = directory.add_employee("Standard Employee", "E", "pe")
    size = len(directory)
    removed = directory.remove_user(e.id)
    assert removed.id == e.id
    assert removed.name == "E"
    assert len(directory) == size - 1


def test_login_failures(directory):
    e = directory.add_employee("Standard Employee", "E", "pe")
    with pytest.raises(AuthenticationFailedError):
        directory.log_in(e.id, "nope")
    with pytest.raises(NotFoundError):
        directory.log_in(4242, "pe")


def test_build_directory_writes_audit_trail(fast_cfg):
    d = build_directory("P", cfg=fast_cfg)
    d.log_in(0, "P")
    e = d.add_employee("Standard Employee", "E", "pe")
    o = d.add_employee("Standard Employee", "O", "po")
    d.log_in(e.id, "pe")
    with pytest.raises(PermissionDeniedError):
        d.get_salary(o.id)
    with open(fast_cfg.audit.path, encoding="utf-8") as f:
        assert "access.decision" in f.read()


def test_build_directory_without_audit(fast_cfg):
    cfg = fast_cfg.model_copy(update={"audit": fast_cfg.audit.model_copy(update={"enabled": False})})
    d = build_directory("P", cfg=cfg)
    assert d.access.audit is None


def test_concurrent_adds_get_distinct_ids(directory):
    out = []

    def worker(n: int) -> None:
        for i in range(5):
            out.append(directory.add_employee("Standard Employee", f"W{n}-{i}", "pw").id)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(out) == len(set(out)) == 20
    assert len(directory) == 21
