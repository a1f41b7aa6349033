from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DirectoryConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_admin_name: str = Field(default="Default Admin", min_length=1, max_length=120)
    admin_id_start: int = Field(default=0, le=0)
    employee_id_start: int = Field(default=1, ge=1)


class PasswordsConfigFile(BaseModel):
    """
    scrypt parameters used for new password digests.

    Existing digests carry their own parameters, so changing these only affects
    accounts created afterwards.
    """

    model_config = ConfigDict(extra="forbid")
    n: int = Field(default=2**14, ge=2)
    r: int = Field(default=8, ge=1)
    p: int = Field(default=1, ge=1)
    salt_bytes: int = Field(default=16, ge=8, le=64)

    @field_validator("n")
    @classmethod
    def _n_power_of_two(cls, v: int) -> int:
        if v & (v - 1):
            raise ValueError("n must be a power of two")
        return v


class AuditConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    path: str = "logs/access.jsonl"
    keep_last: int = Field(default=200, ge=1)
    log_allowed: bool = False


class LoggingConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        lv = str(v or "").upper()
        if lv not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("unknown log level")
        return lv


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    directory: DirectoryConfigFile = Field(default_factory=DirectoryConfigFile)
    passwords: PasswordsConfigFile = Field(default_factory=PasswordsConfigFile)
    audit: AuditConfigFile = Field(default_factory=AuditConfigFile)
    logging: LoggingConfigFile = Field(default_factory=LoggingConfigFile)
