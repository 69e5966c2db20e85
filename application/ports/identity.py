"""
Identity verification port.

Identity on the relay is client-asserted. Every registration passes
through this single hook so a stronger scheme (signed tokens, roster
lookup) can be swapped in without touching the routing logic.
"""
from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from infrastructure.realtime.connection import Connection


class IdentityVerifier(Protocol):
    async def verify_admin(self, conn: "Connection") -> None:
        """Raise IdentityRejectedException to refuse the registration."""
        ...

    async def verify_student(self, conn: "Connection", student_id: str, student_name: str) -> None:
        """Raise IdentityRejectedException to refuse the registration."""
        ...


__all__ = ["IdentityVerifier"]
