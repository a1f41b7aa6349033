from __future__ import annotations

from typing import Any, List, Mapping, Optional

from hrdir.core.access.audit import AccessAuditLogger
from hrdir.core.access.models import AccessDecision, AccessMode, AccessRule
from hrdir.core.errors import PermissionDeniedError
from hrdir.core.identity.models import Administrator, Manager, is_employee
from hrdir.core.identity.session import Session


class AccessResolver:
    """
    Deterministic role-based access evaluation.

    Rules, in order:
    - admin: the signed-in account is an Administrator.
    - read: admin, else self, else HR reading a non-HR account, else a manager
      reading one of their reporting employees.
    - write: admin, else a manager writing one of their reporting employees.

    Self-access and HR membership never grant write access.
    """

    def __init__(
        self,
        *,
        users: Mapping[int, Any],
        session: Session,
        audit: Optional[AccessAuditLogger] = None,
        log_allowed: bool = False,
        logger=None,
    ):
        self.users = users
        self.session = session
        self.audit = audit
        self.log_allowed = log_allowed
        self.logger = logger

    # ---- public API ----
    def evaluate(self, mode: AccessMode, target_id: Optional[int] = None) -> AccessDecision:
        actor = self._actor()
        if actor is None:
            return self._decide(mode, None, target_id, False, AccessRule.not_signed_in, ["No user signed in."])

        if isinstance(actor, Administrator):
            return self._decide(mode, actor, target_id, True, AccessRule.administrator, ["Administrator access."])

        if mode == AccessMode.admin:
            return self._decide(mode, actor, target_id, False, AccessRule.not_administrator, ["Administrator required."])

        if mode == AccessMode.read:
            if target_id == actor.id:
                return self._decide(mode, actor, target_id, True, AccessRule.self_access, ["Reading own record."])
            target = self.users.get(target_id) if target_id is not None else None
            if actor.in_human_resources and target is not None and not _in_hr(target):
                return self._decide(mode, actor, target_id, True, AccessRule.human_resources, ["HR reading a non-HR account."])

        if isinstance(actor, Manager) and target_id is not None and actor.manages(target_id):
            return self._decide(mode, actor, target_id, True, AccessRule.reporting_manager, ["Target reports to the signed-in manager."])

        return self._decide(mode, actor, target_id, False, AccessRule.no_matching_rule, ["No rule grants access."])

    def enforce(self, mode: AccessMode, target_id: Optional[int] = None) -> AccessDecision:
        dec = self.evaluate(mode, target_id)
        if dec.allowed:
            return dec
        if dec.rule == AccessRule.not_signed_in:
            msg = "No user signed in." if mode == AccessMode.admin else "You must log in to perform this action."
        else:
            msg = f"The current user ({dec.actor_name}) does not have permission to perform this action."
        raise PermissionDeniedError(msg, mode=mode.value, target_id=target_id, rule=dec.rule.value)

    def verify_admin(self) -> AccessDecision:
        return self.enforce(AccessMode.admin)

    def verify_read_access(self, target_id: int) -> AccessDecision:
        return self.enforce(AccessMode.read, target_id)

    def verify_write_access(self, target_id: int) -> AccessDecision:
        return self.enforce(AccessMode.write, target_id)

    # ---- helpers ----
    def _actor(self) -> Any:
        uid = self.session.user_id
        if uid is None:
            return None
        return self.users.get(uid)

    def _decide(
        self,
        mode: AccessMode,
        actor: Any,
        target_id: Optional[int],
        allowed: bool,
        rule: AccessRule,
        reasons: List[str],
    ) -> AccessDecision:
        dec = AccessDecision(
            allowed=allowed,
            mode=mode,
            rule=rule,
            actor_id=None if actor is None else actor.id,
            actor_name="" if actor is None else actor.name,
            target_id=target_id,
            reasons=list(reasons),
        )
        self._audit(dec)
        return dec

    def _audit(self, dec: AccessDecision) -> None:
        if dec.allowed and not self.log_allowed:
            return
        if not dec.allowed and self.logger:
            self.logger.warning(f"Access denied: mode={dec.mode.value} actor={dec.actor_id} target={dec.target_id} rule={dec.rule.value}")
        if self.audit is None:
            return
        active = self.session.active()
        self.audit.log_decision(
            trace_id=active.session_id if active is not None else "anonymous",
            severity="WARN" if not dec.allowed else "INFO",
            event="access.decision",
            outcome="allowed" if dec.allowed else "denied",
            details=dec.audit_event(),
        )


def _in_hr(user: Any) -> bool:
    return bool(is_employee(user) and user.in_human_resources)
