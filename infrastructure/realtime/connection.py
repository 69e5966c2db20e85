"""Connection envelope.

Wraps one accepted WebSocket with its role and student identity. Outbound
messages go through a bounded per-connection queue drained by a single
sender task, so a slow socket never blocks whoever is broadcasting.
"""
from __future__ import annotations

import asyncio
import uuid
from enum import Enum
from typing import Any, Optional

from application.ports.realtime import WebSocketPort
from core.config import settings
from core.logging_config import get_logger
from domain.proctoring.entity import Role
from domain.proctoring.events import OutboundMessage


logger = get_logger(__name__)

OVERFLOW_POLICIES = {"drop_oldest", "drop_new", "disconnect"}


class SendResult(str, Enum):
    QUEUED = "queued"
    # backpressure: this message was lost, the recipient stays registered
    DROPPED = "dropped"
    # recipient is gone and should be pruned
    CLOSED = "closed"


class Connection:
    """One live WebSocket plus its classification state."""

    def __init__(
        self,
        ws: WebSocketPort,
        *,
        queue_max: Optional[int] = None,
        overflow_policy: Optional[str] = None,
        send_timeout: Optional[float] = None,
    ) -> None:
        self.ws = ws
        self.id = uuid.uuid4().hex
        self.role = Role.UNCLASSIFIED
        self.student_id: Optional[str] = None
        self.student_name: Optional[str] = None
        self._open = True
        maxsize = queue_max if queue_max is not None else settings.REALTIME_WS_SEND_QUEUE_MAX
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, int(maxsize)))
        policy = (overflow_policy or settings.REALTIME_WS_SEND_OVERFLOW_POLICY or "drop_oldest").lower()
        if policy not in OVERFLOW_POLICIES:
            logger.warning("ws_send_queue_policy_invalid", policy=policy, fallback="drop_oldest")
            policy = "drop_oldest"
        self._policy = policy
        self._send_timeout = send_timeout if send_timeout is not None else settings.REALTIME_WS_SEND_TIMEOUT_S
        self._sender: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<Connection {self.id[:8]} role={self.role.value} student={self.student_id!r}>"

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    def start(self) -> None:
        """Start the sender task; needs a running event loop."""
        if self._sender is None and self._open:
            self._sender = asyncio.create_task(self._sender_loop())

    def classify(self, role: Role, student_id: Optional[str] = None, student_name: Optional[str] = None) -> bool:
        """Set the role once. Returns False if the connection already has one."""
        if self.role is not Role.UNCLASSIFIED or role is Role.UNCLASSIFIED:
            return False
        if role is Role.STUDENT:
            if not student_id:
                raise ValueError("student role requires a student_id")
            self.student_id = student_id
            self.student_name = student_name or student_id
        self.role = role
        return True

    async def send(self, message: OutboundMessage | dict[str, Any]) -> SendResult:
        """Queue one message for delivery; never raises."""
        if not self._open:
            return SendResult.CLOSED
        payload = message if isinstance(message, dict) else message.to_wire()
        try:
            self._queue.put_nowait(payload)
            return SendResult.QUEUED
        except asyncio.QueueFull:
            pass

        if self._policy == "drop_new":
            logger.warning("ws_send_queue_drop_new", conn_id=self.id)
            return SendResult.DROPPED
        if self._policy == "disconnect":
            logger.warning("ws_send_queue_disconnect", conn_id=self.id)
            await self.close(code=1013)
            return SendResult.CLOSED
        # drop_oldest
        try:
            self._queue.get_nowait()
            self._queue.task_done()
        except asyncio.QueueEmpty:
            pass
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("ws_send_queue_drop_after_trim", conn_id=self.id)
            return SendResult.DROPPED
        return SendResult.QUEUED

    async def flush(self) -> None:
        """Wait until everything queued so far has been written or discarded."""
        if self._sender is None or not self._open:
            return
        await self._queue.join()

    async def close(self, code: int = 1000) -> None:
        if not self._open:
            return
        self._open = False
        self._discard_pending()
        task, self._sender = self._sender, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        try:
            await self.ws.close(code=code)
        except Exception as exc:  # already closed by the peer
            logger.debug("ws_close_ignored", conn_id=self.id, error=str(exc))

    def _discard_pending(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._queue.task_done()

    async def _sender_loop(self) -> None:
        try:
            while True:
                payload = await self._queue.get()
                try:
                    await asyncio.wait_for(self.ws.send_json(payload), timeout=self._send_timeout)
                except asyncio.CancelledError:
                    self._queue.task_done()
                    raise
                except Exception as exc:
                    logger.warning("ws_send_failed", conn_id=self.id, error=repr(exc))
                    self._queue.task_done()
                    await self.close(code=1011)
                    return
                self._queue.task_done()
        except asyncio.CancelledError:  # graceful exit
            return
