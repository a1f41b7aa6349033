from __future__ import annotations

import pytest

from hrdir.core.access.audit import AccessAuditLogger
from hrdir.core.config.models import AppConfig, AuditConfigFile, PasswordsConfigFile
from hrdir.core.directory import Directory


ADMIN_PASSWORD = "Password"


@pytest.fixture
def fast_cfg(tmp_path) -> AppConfig:
    """
    Cheap scrypt parameters so tests that create many accounts stay fast.
    """
    return AppConfig(
        passwords=PasswordsConfigFile(n=2**4, r=1, p=1),
        audit=AuditConfigFile(path=str(tmp_path / "logs" / "access.jsonl")),
    )


@pytest.fixture
def audit(tmp_path) -> AccessAuditLogger:
    return AccessAuditLogger(path=str(tmp_path / "logs" / "access.jsonl"), keep_last=50)


@pytest.fixture
def directory(fast_cfg, audit) -> Directory:
    """
    Fresh directory with the default administrator (ID 0) signed in.
    """
    d = Directory(ADMIN_PASSWORD, cfg=fast_cfg, audit=audit)
    d.log_in(0, ADMIN_PASSWORD)
    return d
