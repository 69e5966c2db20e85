import asyncio

import pytest

from domain.proctoring.entity import Role
from domain.proctoring.events import ExamTerminatedMessage, PongMessage
from infrastructure.realtime.connection import Connection, SendResult
from tests.fakes import FakeWebSocket


pytestmark = pytest.mark.asyncio


async def test_classify_is_first_write_wins():
    conn = Connection(FakeWebSocket())
    assert conn.classify(Role.STUDENT, student_id="s1", student_name="Alice") is True
    assert conn.classify(Role.ADMIN) is False
    assert conn.role is Role.STUDENT
    assert (conn.student_id, conn.student_name) == ("s1", "Alice")


async def test_student_role_requires_id():
    conn = Connection(FakeWebSocket())
    with pytest.raises(ValueError):
        conn.classify(Role.STUDENT)
    assert conn.role is Role.UNCLASSIFIED


async def test_send_delivers_in_order():
    ws = FakeWebSocket()
    conn = Connection(ws)
    conn.start()
    assert await conn.send(PongMessage()) is SendResult.QUEUED
    assert await conn.send(ExamTerminatedMessage(reason="x")) is SendResult.QUEUED
    await conn.flush()
    assert ws.sent == [{"type": "pong"}, {"type": "exam-terminated", "reason": "x"}]
    await conn.close()


async def test_send_after_close_reports_closed():
    ws = FakeWebSocket()
    conn = Connection(ws)
    conn.start()
    await conn.close(code=1001)
    assert ws.closed and ws.close_code == 1001
    assert await conn.send(PongMessage()) is SendResult.CLOSED


async def test_close_is_idempotent():
    ws = FakeWebSocket()
    conn = Connection(ws)
    await conn.close()
    ws.close_code = None
    await conn.close(code=1011)
    assert ws.close_code is None


async def test_failed_write_marks_connection_closed():
    ws = FakeWebSocket(fail=True)
    conn = Connection(ws)
    conn.start()
    assert await conn.send(PongMessage()) is SendResult.QUEUED
    await conn.flush()
    assert conn.is_open is False
    assert await conn.send(PongMessage()) is SendResult.CLOSED


async def test_slow_write_times_out_and_closes():
    ws = FakeWebSocket(stall=True)
    conn = Connection(ws, send_timeout=0.01)
    conn.start()
    await conn.send(PongMessage())
    await asyncio.wait_for(conn.flush(), timeout=2)
    assert conn.is_open is False


async def test_overflow_drop_new():
    conn = Connection(FakeWebSocket(), queue_max=1, overflow_policy="drop_new")
    assert await conn.send(PongMessage()) is SendResult.QUEUED
    assert await conn.send(PongMessage()) is SendResult.DROPPED
    assert conn.is_open


async def test_overflow_drop_oldest_keeps_latest():
    ws = FakeWebSocket()
    conn = Connection(ws, queue_max=1, overflow_policy="drop_oldest")
    await conn.send(ExamTerminatedMessage(reason="old"))
    assert await conn.send(ExamTerminatedMessage(reason="new")) is SendResult.QUEUED
    conn.start()
    await conn.flush()
    assert ws.sent == [{"type": "exam-terminated", "reason": "new"}]
    await conn.close()


async def test_overflow_disconnect_closes_connection():
    ws = FakeWebSocket()
    conn = Connection(ws, queue_max=1, overflow_policy="disconnect")
    await conn.send(PongMessage())
    assert await conn.send(PongMessage()) is SendResult.CLOSED
    assert ws.closed and ws.close_code == 1013


async def test_invalid_policy_falls_back_to_drop_oldest():
    conn = Connection(FakeWebSocket(), queue_max=1, overflow_policy="explode")
    await conn.send(PongMessage())
    assert await conn.send(PongMessage()) is SendResult.QUEUED
