"""Application service for the proctoring relay.

Routes each decoded inbound event to its registry mutation and fan-out.
Connections are classified once, by their first successful
register-admin or register-student; after that every message is handled
independently, so a bad message can never corrupt the registry.
"""
from __future__ import annotations

from typing import Optional

import structlog

from application.ports.identity import IdentityVerifier
from application.ports.realtime import WebSocketPort
from core.config import settings
from core.logging_config import get_logger
from domain.common.exceptions import (
    IdentityRejectedException,
    MalformedMessageException,
    StudentNotFoundException,
)
from domain.proctoring.entity import Role, StudentSummary
from domain.proctoring.events import (
    ExamTerminatedMessage,
    InboundEvent,
    Ping,
    Pong,
    PongMessage,
    RegisterAdmin,
    RegisterStudent,
    ScreenFrame,
    ScreenFrameMessage,
    StudentJoinedMessage,
    StudentLeft,
    StudentLeftMessage,
    StudentListMessage,
    TerminateExam,
    parse_inbound,
)
from infrastructure.realtime.connection import Connection
from infrastructure.realtime.fanout import Broadcaster
from infrastructure.realtime.registry import ConnectionRegistry


logger = get_logger(__name__)


class ProctorRelayService:
    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        broadcaster: Broadcaster,
        identity: IdentityVerifier,
        default_terminate_reason: Optional[str] = None,
    ) -> None:
        self._registry = registry
        self._fanout = broadcaster
        self._identity = identity
        self._default_reason = default_terminate_reason or settings.PROCTOR_DEFAULT_TERMINATE_REASON

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    # Connection lifecycle
    def connect(self, ws: WebSocketPort) -> Connection:
        conn = Connection(ws)
        conn.start()
        logger.info("connection_opened", conn_id=conn.id)
        return conn

    async def disconnect(self, conn: Connection, code: int = 1000) -> None:
        """Transport closed: same cleanup as an explicit student-left."""
        await conn.close(code=code)
        student_id = await self._registry.unregister(conn)
        if student_id is not None:
            await self._fanout.to_all_admins(StudentLeftMessage(student_id=student_id))
            logger.info("student_disconnected", student_id=student_id, student_name=conn.student_name)
        logger.info("connection_closed", conn_id=conn.id, role=conn.role.value)

    # Inbound
    async def handle_raw(self, conn: Connection, raw: str | bytes) -> None:
        """Decode and dispatch one message; never raises for a bad message."""
        try:
            event = parse_inbound(raw)
        except MalformedMessageException as exc:
            logger.warning("message_malformed", conn_id=conn.id, **(exc.details or {}))
            return
        if event is None:
            logger.debug("message_type_ignored", conn_id=conn.id)
            return
        try:
            await self.dispatch(conn, event)
        except IdentityRejectedException as exc:
            logger.warning("registration_rejected", conn_id=conn.id, **(exc.details or {}))
        except Exception as exc:
            logger.error("message_dispatch_failed", conn_id=conn.id, type=event.type, error=str(exc), exc_info=True)

    async def dispatch(self, conn: Connection, event: InboundEvent) -> None:
        if isinstance(event, RegisterAdmin):
            await self.register_admin(conn)
        elif isinstance(event, RegisterStudent):
            await self.register_student(conn, event.student_id, event.display_name)
        elif isinstance(event, ScreenFrame):
            await self.relay_frame(event)
        elif isinstance(event, StudentLeft):
            await self.student_left(event.student_id)
        elif isinstance(event, TerminateExam):
            try:
                await self.terminate_exam(event.student_id, event.reason)
            except StudentNotFoundException as exc:
                logger.info("terminate_target_missing", conn_id=conn.id, **(exc.details or {}))
        elif isinstance(event, Ping):
            await self._fanout.to_connection(conn, PongMessage())
        elif isinstance(event, Pong):
            return
        else:  # pragma: no cover
            logger.debug("message_type_ignored", conn_id=conn.id, type=getattr(event, "type", None))

    # Use-cases
    async def register_admin(self, conn: Connection) -> None:
        if conn.role is not Role.UNCLASSIFIED:
            logger.info("reclassification_ignored", conn_id=conn.id, role=conn.role.value, requested="admin")
            return
        await self._identity.verify_admin(conn)
        conn.classify(Role.ADMIN)
        structlog.contextvars.bind_contextvars(role=Role.ADMIN.value)
        await self._registry.register_admin(conn)
        snapshot = await self._registry.snapshot_students()
        await self._fanout.to_connection(conn, StudentListMessage.from_snapshot(snapshot))

    async def register_student(self, conn: Connection, student_id: str, student_name: str) -> None:
        if conn.role is not Role.UNCLASSIFIED:
            logger.info("reclassification_ignored", conn_id=conn.id, role=conn.role.value, requested="student")
            return
        await self._identity.verify_student(conn, student_id, student_name)
        conn.classify(Role.STUDENT, student_id=student_id, student_name=student_name)
        structlog.contextvars.bind_contextvars(role=Role.STUDENT.value, student_id=student_id)
        await self._registry.register_student(student_id, student_name, conn)
        await self._fanout.to_all_admins(StudentJoinedMessage(student_id=student_id, student_name=student_name))

    async def relay_frame(self, event: ScreenFrame) -> int:
        return await self._fanout.to_all_admins(
            ScreenFrameMessage(student_id=event.student_id, frame=event.frame, timestamp=event.timestamp)
        )

    async def student_left(self, student_id: str) -> None:
        removed = await self._registry.remove_student(student_id)
        await self._fanout.to_all_admins(StudentLeftMessage(student_id=student_id))
        logger.info("student_left", student_id=student_id, was_registered=removed)

    async def terminate_exam(self, student_id: str, reason: Optional[str] = None) -> None:
        """Tell one student their exam is over.

        Raises:
            StudentNotFoundException: no live connection for ``student_id``.
        """
        reason = (reason or "").strip() or self._default_reason
        delivered = await self._fanout.to_student(student_id, ExamTerminatedMessage(reason=reason))
        if not delivered:
            raise StudentNotFoundException(student_id)
        logger.info("exam_terminated", student_id=student_id, reason=reason)

    async def list_students(self) -> list[StudentSummary]:
        return await self._registry.snapshot_students()

    async def shutdown(self) -> None:
        for conn in await self._registry.all_connections():
            await conn.close(code=1001)
