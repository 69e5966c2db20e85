"""In-process connection registry.

The single source of truth for who is connected and as what: one live
connection per student id (last writer wins) and a set of admin
connections. Every mutation happens under one asyncio lock and no I/O is
awaited while it is held; callers get snapshots and send outside it.
"""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Set

from core.logging_config import get_logger
from domain.proctoring.entity import StudentSummary
from infrastructure.realtime.connection import Connection


logger = get_logger(__name__)


class ConnectionRegistry:
    def __init__(self) -> None:
        # student_id -> Connection
        self._students: Dict[str, Connection] = {}
        self._admins: Set[Connection] = set()
        self._lock = asyncio.Lock()

    async def register_admin(self, conn: Connection) -> None:
        async with self._lock:
            self._admins.add(conn)
            total = len(self._admins)
        logger.info("admin_registered", conn_id=conn.id, admins=total)

    async def register_student(self, student_id: str, student_name: str, conn: Connection) -> Optional[Connection]:
        """Map ``student_id`` to ``conn``; returns the connection it replaced, if any.

        The replaced connection is not closed here. It stays open until its
        own teardown runs, but is no longer reachable through the registry.
        """
        async with self._lock:
            previous = self._students.pop(student_id, None)
            self._students[student_id] = conn
            total = len(self._students)
        if previous is not None and previous is not conn:
            logger.warning(
                "student_registration_replaced",
                student_id=student_id,
                conn_id=conn.id,
                orphaned_conn_id=previous.id,
            )
        else:
            previous = None
        logger.info("student_registered", student_id=student_id, student_name=student_name, students=total)
        return previous

    async def remove_student(self, student_id: str, conn: Optional[Connection] = None) -> bool:
        """Drop the entry for ``student_id``.

        With ``conn`` given, only drops it while it still points at that
        connection, so an orphaned connection closing late cannot evict
        the student's newer one.
        """
        async with self._lock:
            current = self._students.get(student_id)
            if current is None or (conn is not None and current is not conn):
                return False
            del self._students[student_id]
            total = len(self._students)
        logger.info("student_removed", student_id=student_id, students=total)
        return True

    async def remove_admin(self, conn: Connection) -> bool:
        async with self._lock:
            if conn not in self._admins:
                return False
            self._admins.discard(conn)
            total = len(self._admins)
        logger.info("admin_removed", conn_id=conn.id, admins=total)
        return True

    async def unregister(self, conn: Connection) -> Optional[str]:
        """Teardown helper; returns the student id whose entry was removed."""
        if conn.is_admin:
            await self.remove_admin(conn)
            return None
        if conn.is_student and conn.student_id is not None:
            if await self.remove_student(conn.student_id, conn):
                return conn.student_id
        return None

    async def snapshot_students(self) -> List[StudentSummary]:
        async with self._lock:
            return [
                StudentSummary(id=sid, name=c.student_name or sid)
                for sid, c in self._students.items()
            ]

    async def lookup_student(self, student_id: str) -> Optional[Connection]:
        async with self._lock:
            return self._students.get(student_id)

    async def admins(self) -> List[Connection]:
        async with self._lock:
            return list(self._admins)

    async def all_connections(self) -> List[Connection]:
        async with self._lock:
            return list(self._admins) + list(self._students.values())

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            return {"students": len(self._students), "admins": len(self._admins)}
