from __future__ import annotations

import json
import os

import pytest

from hrdir.core.config.manager import CONFIG_FILES, ConfigManager
from hrdir.core.config.models import LoggingConfigFile, PasswordsConfigFile
from hrdir.core.config.paths import ConfigFsPaths
from hrdir.core.errors import ConfigError


class DummyLogger:
    def info(self, *_a, **_k): ...
    def warning(self, *_a, **_k): ...
    def error(self, *_a, **_k): ...


def _write_json(path: str, obj) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
        f.write("\n")


def test_load_all_creates_defaults(tmp_path):
    fs = ConfigFsPaths(str(tmp_path))
    cm = ConfigManager(fs=fs, logger=DummyLogger())
    cfg = cm.load_all()
    assert cfg.directory.default_admin_name == "Default Admin"
    assert cfg.directory.admin_id_start == 0
    assert cfg.directory.employee_id_start == 1
    assert cfg.passwords.n == 2**14
    assert cfg.audit.log_allowed is False
    for name in CONFIG_FILES:
        assert os.path.exists(os.path.join(fs.config_dir, name))
    assert cm.get() is cfg


def test_get_before_load_fails(tmp_path):
    with pytest.raises(ConfigError):
        ConfigManager(fs=ConfigFsPaths(str(tmp_path))).get()


def test_existing_values_are_kept(tmp_path):
    fs = ConfigFsPaths(str(tmp_path))
    _write_json(fs.config_file("directory.json"), {"default_admin_name": "Root", "admin_id_start": 0, "employee_id_start": 100})
    cfg = ConfigManager(fs=fs).load_all()
    assert cfg.directory.default_admin_name == "Root"
    assert cfg.directory.employee_id_start == 100


@pytest.mark.parametrize(
    "name,obj",
    [
        ("directory.json", {"employee_id_start": 0}),
        ("directory.json", {"admin_id_start": 5}),
        ("passwords.json", {"n": 1000}),
        ("logging.json", {"level": "LOUD"}),
        ("audit.json", {"unexpected": True}),
    ],
)
def test_invalid_values_are_rejected(tmp_path, name, obj):
    fs = ConfigFsPaths(str(tmp_path))
    _write_json(os.path.join(fs.config_dir, name), obj)
    with pytest.raises(ConfigError) as ei:
        ConfigManager(fs=fs).load_all()
    assert ei.value.user_message.startswith("Invalid configuration")


def test_corrupt_and_non_object_files(tmp_path):
    fs = ConfigFsPaths(str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    with open(fs.config_file("audit.json"), "w", encoding="utf-8") as f:
        f.write("{not json")
    with pytest.raises(ConfigError) as ei:
        ConfigManager(fs=fs).load_all()
    assert "audit.json unreadable" in ei.value.user_message

    _write_json(fs.config_file("audit.json"), [1, 2, 3])
    with pytest.raises(ConfigError) as ei:
        ConfigManager(fs=fs).load_all()
    assert "not_object" in ei.value.user_message


def test_reload_if_changed(tmp_path):
    fs = ConfigFsPaths(str(tmp_path))
    cm = ConfigManager(fs=fs, logger=DummyLogger())
    cm.load_all()
    assert cm.reload_if_changed().changed_files == {}

    _write_json(fs.config_file("audit.json"), {"enabled": False, "path": "logs/access.jsonl", "keep_last": 10, "log_allowed": True})
    assert "audit.json" in cm.diff_since_last_load().changed_files
    assert cm.reload_if_changed().names == ["audit.json"]
    assert cm.get().audit.enabled is False
    assert cm.get().audit.keep_last == 10


def test_reload_rejects_invalid_and_keeps_previous(tmp_path):
    fs = ConfigFsPaths(str(tmp_path))
    cm = ConfigManager(fs=fs, logger=DummyLogger())
    before = cm.load_all()
    _write_json(fs.config_file("passwords.json"), {"n": 3})
    with pytest.raises(ConfigError):
        cm.reload_if_changed()
    assert cm.get() is before


def test_model_level_validation():
    assert LoggingConfigFile(level="warning").level == "WARNING"
    with pytest.raises(ValueError):
        PasswordsConfigFile(n=12)
    with pytest.raises(ValueError):
        PasswordsConfigFile(salt_bytes=4)


def test_reload_before_load_fails(tmp_path):
    with pytest.raises(ConfigError):
        ConfigManager(fs=ConfigFsPaths(str(tmp_path))).reload_if_changed()


def test_default_files_are_written_atomically(tmp_path):
    fs = ConfigFsPaths(str(tmp_path))
    ConfigManager(fs=fs).load_all()
    leftovers = [n for n in os.listdir(fs.config_dir) if n.startswith(".tmp_")]
    assert leftovers == []
    with open(fs.config_file("passwords.json"), encoding="utf-8") as f:
        assert json.load(f)["n"] == 2**14
