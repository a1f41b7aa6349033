from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AccessMode(str, Enum):
    admin = "admin"
    read = "read"
    write = "write"


class AccessRule(str, Enum):
    """Which rule decided the outcome."""

    administrator = "administrator"
    self_access = "self"
    human_resources = "human_resources"
    reporting_manager = "reporting_manager"
    not_signed_in = "not_signed_in"
    not_administrator = "not_administrator"
    no_matching_rule = "no_matching_rule"


class AccessDecision(BaseModel):
    model_config = ConfigDict(extra="forbid")

    allowed: bool
    mode: AccessMode
    rule: AccessRule
    actor_id: Optional[int] = None
    actor_name: str = ""
    target_id: Optional[int] = None
    reasons: List[str] = Field(default_factory=list)
    decided_at: float = Field(default_factory=lambda: time.time())

    def audit_event(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "rule": self.rule.value,
            "actor_id": self.actor_id,
            "target_id": self.target_id,
            "allowed": bool(self.allowed),
        }
