import asyncio

import pytest

from domain.proctoring.entity import Role
from domain.proctoring.events import ExamTerminatedMessage, StudentLeftMessage
from infrastructure.realtime.connection import Connection
from infrastructure.realtime.fanout import Broadcaster
from infrastructure.realtime.registry import ConnectionRegistry
from tests.fakes import FakeWebSocket


pytestmark = pytest.mark.asyncio


async def _admin(registry: ConnectionRegistry, ws: FakeWebSocket, **kwargs) -> Connection:
    conn = Connection(ws, **kwargs)
    conn.classify(Role.ADMIN)
    conn.start()
    await registry.register_admin(conn)
    return conn


async def test_closed_admin_is_pruned_and_others_still_receive(registry: ConnectionRegistry):
    fanout = Broadcaster(registry)
    healthy_ws = FakeWebSocket()
    healthy = await _admin(registry, healthy_ws)
    dead = await _admin(registry, FakeWebSocket())
    await dead.close()

    delivered = await fanout.to_all_admins(StudentLeftMessage(student_id="s1"))
    await healthy.flush()

    assert delivered == 1
    assert healthy_ws.sent == [{"type": "student-left", "studentId": "s1"}]
    assert await registry.admins() == [healthy]
    await healthy.close()


async def test_stalled_admin_does_not_block_broadcast(registry: ConnectionRegistry):
    fanout = Broadcaster(registry)
    stalled = await _admin(registry, FakeWebSocket(stall=True), send_timeout=3600)
    fast_ws = FakeWebSocket()
    fast = await _admin(registry, fast_ws)

    for i in range(3):
        await asyncio.wait_for(fanout.to_all_admins(StudentLeftMessage(student_id=f"s{i}")), timeout=1)
    await asyncio.wait_for(fast.flush(), timeout=1)

    assert len(fast_ws.sent) == 3
    assert stalled.is_open
    await stalled.close()
    await fast.close()


async def test_lagging_admin_is_kept_when_message_dropped(registry: ConnectionRegistry):
    fanout = Broadcaster(registry)
    # sender never started, so the single slot stays full
    lagging = Connection(FakeWebSocket(), queue_max=1, overflow_policy="drop_new")
    lagging.classify(Role.ADMIN)
    await registry.register_admin(lagging)

    assert await fanout.to_all_admins(StudentLeftMessage(student_id="a")) == 1
    assert await fanout.to_all_admins(StudentLeftMessage(student_id="b")) == 0
    assert await registry.admins() == [lagging]


async def test_to_student_reports_missing_recipient(registry: ConnectionRegistry):
    fanout = Broadcaster(registry)
    assert await fanout.to_student("nobody", ExamTerminatedMessage(reason="x")) is False


async def test_to_student_reaches_only_that_student(registry: ConnectionRegistry):
    fanout = Broadcaster(registry)
    ws1, ws2 = FakeWebSocket(), FakeWebSocket()
    s1, s2 = Connection(ws1), Connection(ws2)
    for conn, sid in ((s1, "s1"), (s2, "s2")):
        conn.classify(Role.STUDENT, student_id=sid)
        conn.start()
        await registry.register_student(sid, sid, conn)

    assert await fanout.to_student("s1", ExamTerminatedMessage(reason="x")) is True
    await s1.flush()
    await s2.flush()
    assert ws1.sent == [{"type": "exam-terminated", "reason": "x"}]
    assert ws2.sent == []
    await s1.close()
    await s2.close()
