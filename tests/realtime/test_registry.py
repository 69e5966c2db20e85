import pytest

from domain.proctoring.entity import Role, StudentSummary
from infrastructure.realtime.connection import Connection
from infrastructure.realtime.registry import ConnectionRegistry
from tests.fakes import FakeWebSocket


pytestmark = pytest.mark.asyncio


def _student(student_id: str, name: str) -> Connection:
    conn = Connection(FakeWebSocket())
    conn.classify(Role.STUDENT, student_id=student_id, student_name=name)
    return conn


def _admin() -> Connection:
    conn = Connection(FakeWebSocket())
    conn.classify(Role.ADMIN)
    return conn


async def test_last_registration_wins(registry: ConnectionRegistry):
    first, second, third = _student("s1", "A"), _student("s1", "B"), _student("s1", "C")
    assert await registry.register_student("s1", "A", first) is None
    assert await registry.register_student("s1", "B", second) is first
    assert await registry.register_student("s1", "C", third) is second
    assert await registry.lookup_student("s1") is third
    assert await registry.stats() == {"students": 1, "admins": 0}
    # replaced connections are orphaned, not closed
    assert first.is_open and second.is_open


async def test_reregistering_same_connection_reports_nothing_replaced(registry: ConnectionRegistry):
    conn = _student("s1", "A")
    await registry.register_student("s1", "A", conn)
    assert await registry.register_student("s1", "A", conn) is None


async def test_remove_student_is_idempotent(registry: ConnectionRegistry):
    await registry.register_student("s1", "A", _student("s1", "A"))
    assert await registry.remove_student("s1") is True
    assert await registry.remove_student("s1") is False
    assert await registry.lookup_student("s1") is None


async def test_remove_student_with_stale_connection_keeps_newer_entry(registry: ConnectionRegistry):
    old, new = _student("s1", "A"), _student("s1", "A")
    await registry.register_student("s1", "A", old)
    await registry.register_student("s1", "A", new)
    assert await registry.remove_student("s1", old) is False
    assert await registry.lookup_student("s1") is new


async def test_admins_have_set_semantics(registry: ConnectionRegistry):
    admin = _admin()
    await registry.register_admin(admin)
    await registry.register_admin(admin)
    assert await registry.admins() == [admin]
    assert await registry.remove_admin(admin) is True
    assert await registry.remove_admin(admin) is False


async def test_snapshot_is_insertion_ordered_with_names(registry: ConnectionRegistry):
    await registry.register_student("s2", "Bob", _student("s2", "Bob"))
    await registry.register_student("s1", "Alice", _student("s1", "Alice"))
    assert await registry.snapshot_students() == [
        StudentSummary(id="s2", name="Bob"),
        StudentSummary(id="s1", name="Alice"),
    ]


async def test_unregister_by_role(registry: ConnectionRegistry):
    admin, student = _admin(), _student("s1", "Alice")
    await registry.register_admin(admin)
    await registry.register_student("s1", "Alice", student)

    assert await registry.unregister(admin) is None
    assert await registry.unregister(student) == "s1"
    assert await registry.unregister(student) is None
    assert await registry.unregister(Connection(FakeWebSocket())) is None
    assert await registry.stats() == {"students": 0, "admins": 0}
