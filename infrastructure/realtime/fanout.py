"""Broadcast fan-out.

Delivers one outbound message to an audience taken as a snapshot of the
registry. A recipient that turns out to be closed is pruned; one that is
merely lagging loses the message and stays registered.
"""
from __future__ import annotations

from core.logging_config import get_logger
from domain.proctoring.events import OutboundMessage
from infrastructure.realtime.connection import Connection, SendResult
from infrastructure.realtime.registry import ConnectionRegistry


logger = get_logger(__name__)


class Broadcaster:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    async def to_all_admins(self, message: OutboundMessage) -> int:
        """Returns how many admins accepted the message."""
        targets = await self._registry.admins()
        delivered = 0
        for conn in targets:
            result = await conn.send(message)
            if result is SendResult.QUEUED:
                delivered += 1
            elif result is SendResult.CLOSED:
                await self._registry.remove_admin(conn)
                logger.info("admin_pruned", conn_id=conn.id, message_type=message.type)
            else:
                logger.debug("admin_message_dropped", conn_id=conn.id, message_type=message.type)
        return delivered

    async def to_student(self, student_id: str, message: OutboundMessage) -> bool:
        conn = await self._registry.lookup_student(student_id)
        if conn is None:
            return False
        return await self.to_connection(conn, message)

    async def to_connection(self, conn: Connection, message: OutboundMessage) -> bool:
        result = await conn.send(message)
        if result is not SendResult.QUEUED:
            logger.info("direct_send_failed", conn_id=conn.id, message_type=message.type, result=result.value)
        return result is SendResult.QUEUED
