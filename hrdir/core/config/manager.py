from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from hrdir.core.config.io import atomic_write_json, read_json_file
from hrdir.core.config.models import (
    AppConfig,
    AuditConfigFile,
    DirectoryConfigFile,
    LoggingConfigFile,
    PasswordsConfigFile,
)
from hrdir.core.config.paths import ConfigFsPaths
from hrdir.core.errors import ConfigError


# config filename -> AppConfig section
CONFIG_FILES: Dict[str, str] = {
    "directory.json": "directory",
    "passwords.json": "passwords",
    "audit.json": "audit",
    "logging.json": "logging",
}


@dataclass
class DiffResult:
    changed_files: Dict[str, Dict[str, Any]]

    @property
    def names(self) -> List[str]:
        return sorted(self.changed_files)


class ConfigManager:
    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self._cfg: Optional[AppConfig] = None
        self._raw_last: Dict[str, Dict[str, Any]] = {}

    # ---------- public API ----------
    def load_all(self) -> AppConfig:
        files = self._load_raw_files()
        ensured = self._ensure_defaults(files)
        cfg = self._validate_all(ensured)
        self._cfg = cfg
        self._raw_last = {k: dict(v) for k, v in ensured.items()}
        return cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def diff_since_last_load(self) -> DiffResult:
        now = self._load_raw_files()
        changed: Dict[str, Dict[str, Any]] = {}
        for k, v in now.items():
            if k not in self._raw_last or self._raw_last[k] != v:
                changed[k] = {"before": self._raw_last.get(k), "after": v}
        return DiffResult(changed_files=changed)

    def reload_if_changed(self) -> DiffResult:
        """
        Re-read config files and apply them only if the full set still validates.

        Returns the applied changes (empty when nothing changed). An unreadable or
        invalid set raises `ConfigError` and the previous config stays active.
        """
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        diff = self.diff_since_last_load()
        if not diff.changed_files:
            return diff
        raw = self._load_raw_files()
        try:
            cfg = self._validate_all(raw)
        except ConfigError as e:
            if self.logger:
                self.logger.warning(f"Config reload rejected (keeping previous): {e}")
            raise
        self._cfg = cfg
        self._raw_last = {k: dict(v) for k, v in raw.items()}
        if self.logger:
            self.logger.info(f"Config reloaded: {diff.names}")
        return diff

    # ---------- internals ----------
    def _load_raw_files(self) -> Dict[str, Dict[str, Any]]:
        out: Dict[str, Dict[str, Any]] = {}
        for name in CONFIG_FILES:
            rr = read_json_file(self.fs.config_file(name))
            if rr.ok:
                out[name] = rr.data
            elif rr.error == "missing":
                continue
            else:
                raise ConfigError(f"{name} unreadable: {rr.error}", file=name)
        return out

    def _ensure_defaults(self, files: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        defaults: Dict[str, Dict[str, Any]] = {
            "directory.json": DirectoryConfigFile().model_dump(),
            "passwords.json": PasswordsConfigFile().model_dump(),
            "audit.json": AuditConfigFile().model_dump(),
            "logging.json": LoggingConfigFile().model_dump(),
        }
        out = dict(files)
        for name, data in defaults.items():
            if name in out:
                continue
            out[name] = data
            atomic_write_json(self.fs.config_file(name), data)
            if self.logger:
                self.logger.info(f"Created default config: {name}")
        return out

    def _validate_all(self, files: Dict[str, Dict[str, Any]]) -> AppConfig:
        sections = {section: files.get(name) or {} for name, section in CONFIG_FILES.items()}
        try:
            return AppConfig.model_validate(sections)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
