from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from hrdir.core.identity.models import ActiveSession, UserKind


@dataclass
class Session:
    """
    Single-slot session: Anonymous <-> Authenticated-as-X.

    Starting a session replaces any previous one; there is no stacking.
    """

    _active: Optional[ActiveSession] = None

    def start(self, *, user_id: int, kind: UserKind) -> ActiveSession:
        s = ActiveSession(user_id=int(user_id), kind=kind)
        self._active = s
        return s

    def end(self) -> None:
        self._active = None

    def active(self) -> Optional[ActiveSession]:
        return self._active

    @property
    def user_id(self) -> Optional[int]:
        return None if self._active is None else self._active.user_id
