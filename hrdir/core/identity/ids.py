from __future__ import annotations

from dataclasses import dataclass, field
from typing import Container

from hrdir.core.errors import InvalidStateError


@dataclass
class IdAllocator:
    """
    Monotonic ID counter owned by a single directory.

    Administrators count down (step -1), employees count up (step 1).
    """

    start: int
    step: int
    _next: int = field(init=False)

    def __post_init__(self) -> None:
        if self.step not in (-1, 1):
            raise ValueError("step must be -1 or 1")
        self._next = self.start

    @property
    def next_id(self) -> int:
        return self._next

    def allocate(self, taken: Container[int]) -> int:
        nid = self._next
        if nid in taken:
            raise InvalidStateError(f"ID {nid} is already in use.", id=nid)
        self._next += self.step
        return nid

    def reset(self, next_id: int) -> None:
        self._next = int(next_id)
