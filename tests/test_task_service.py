import asyncio
from todox.adapters.memory.task_store import InMemoryTaskStore
from todox.services.task_service import TaskService
from todox.domain.task import OwnerId, TaskId
from todox.domain.errors import TaskNotFoundOrForbiddenError, TaskValidationError, PersistenceError
import pytest
from datetime import datetime, timezone, timedelta

from fakes import FakeIdProvider, FakeClock

ALICE = OwnerId("alice")
BOB = OwnerId("bob")


def make_service(clock: FakeClock | None = None) -> TaskService:
    return TaskService(InMemoryTaskStore(), FakeIdProvider(), clock or FakeClock(step=timedelta(seconds=1)))


@pytest.mark.asyncio
async def test_create_task_defaults():
    # Arrange
    service = make_service()

    # Act
    task = await service.create_task(ALICE, {"name": "x"})

    # Assert
    assert task.completed is False
    assert task.task_id
    assert task.owner_id == ALICE
    items = await service.list_tasks(ALICE)
    assert items == [task]


@pytest.mark.asyncio
async def test_create_accepts_completed_flag():
    service = make_service()

    task = await service.create_task(ALICE, {"name": "x", "completed": True})

    assert task.completed is True


@pytest.mark.asyncio
async def test_create_treats_null_completed_as_false():
    service = make_service()

    task = await service.create_task(ALICE, {"name": "x", "completed": None})

    assert task.completed is False


@pytest.mark.asyncio
@pytest.mark.parametrize("payload, field", [
    ({}, "name"),
    ({"name": ""}, "name"),
    ({"name": "   "}, "name"),
    ({"name": 42}, "name"),
    ({"name": "x", "completed": "yes"}, "completed"),
    ({"name": "x", "id": "mine"}, "id"),
    (None, "payload"),
    (["name"], "payload"),
])
async def test_create_rejects_invalid_payload(payload, field):
    service = make_service()

    with pytest.raises(TaskValidationError) as exc:
        await service.create_task(ALICE, payload)

    assert exc.value.field == field
    assert await service.list_tasks(ALICE) == []


@pytest.mark.asyncio
async def test_create_reports_all_violations():
    service = make_service()

    with pytest.raises(TaskValidationError) as exc:
        await service.create_task(ALICE, {"completed": "no", "owner": "bob"})

    fields = {f for f, _ in exc.value.violations}
    assert fields == {"name", "completed", "owner"}


@pytest.mark.asyncio
async def test_create_ignores_client_ids_and_uses_clock_time():
    clock = FakeClock(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    service = make_service(clock)

    t = await service.create_task(ALICE, {"name": "A"})

    assert t.task_id == "id-001"
    assert t.created_at == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_list_empty_returns_no_items():
    service = make_service()

    assert await service.list_tasks(ALICE) == []
    assert await service.list_tasks(ALICE, completed=True) == []


@pytest.mark.asyncio
async def test_list_sorted_by_created_at():
    service = make_service()

    t1 = await service.create_task(ALICE, {"name": "A"})
    t2 = await service.create_task(ALICE, {"name": "B"})

    items = await service.list_tasks(ALICE)
    assert [t.task_id for t in items] == [t1.task_id, t2.task_id]


@pytest.mark.asyncio
async def test_list_ties_broken_by_task_id():
    service = make_service(FakeClock())  # every task gets the same timestamp

    for name in ("A", "B", "C"):
        await service.create_task(ALICE, {"name": name})

    items = await service.list_tasks(ALICE)
    assert items == sorted(items, key=lambda t: (t.created_at, str(t.task_id)))


@pytest.mark.asyncio
async def test_filter_correctness():
    service = make_service()
    done = await service.create_task(ALICE, {"name": "A", "completed": True})
    open1 = await service.create_task(ALICE, {"name": "B"})
    open2 = await service.create_task(ALICE, {"name": "C", "completed": False})

    assert await service.list_tasks(ALICE, completed=True) == [done]
    assert await service.list_tasks(ALICE, completed=False) == [open1, open2]


@pytest.mark.asyncio
async def test_list_rejects_non_boolean_filter():
    service = make_service()

    with pytest.raises(TaskValidationError):
        await service.list_tasks(ALICE, completed="true")


@pytest.mark.asyncio
async def test_set_completed_changes_only_the_flag():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})

    updated = await service.set_completed(ALICE, t.task_id, True)

    assert updated.completed is True
    assert updated.name == t.name
    assert updated.created_at == t.created_at
    assert updated.owner_id == t.owner_id


@pytest.mark.asyncio
async def test_set_completed_is_idempotent():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})

    t1 = await service.set_completed(ALICE, t.task_id, True)
    t2 = await service.set_completed(ALICE, t.task_id, True)

    assert t1.completed is True
    assert t2.completed is True
    assert t1 == t2


@pytest.mark.asyncio
async def test_set_completed_can_reopen():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A", "completed": True})

    reopened = await service.set_completed(ALICE, t.task_id, False)

    assert reopened.completed is False


@pytest.mark.asyncio
async def test_set_completed_rejects_non_boolean():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})

    with pytest.raises(TaskValidationError):
        await service.set_completed(ALICE, t.task_id, "true")


@pytest.mark.asyncio
async def test_set_completed_missing_task_raises():
    service = make_service()

    with pytest.raises(TaskNotFoundOrForbiddenError):
        await service.set_completed(ALICE, TaskId("non-existent-id"), True)


@pytest.mark.asyncio
async def test_delete_finality():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})

    assert await service.delete_task(ALICE, t.task_id) == 1
    with pytest.raises(TaskNotFoundOrForbiddenError):
        await service.delete_task(ALICE, t.task_id)
    assert await service.list_tasks(ALICE) == []


@pytest.mark.asyncio
async def test_set_completed_after_delete_raises():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})
    await service.delete_task(ALICE, t.task_id)

    with pytest.raises(TaskNotFoundOrForbiddenError):
        await service.set_completed(ALICE, t.task_id, True)
    assert await service.list_tasks(ALICE) == []


@pytest.mark.asyncio
async def test_concurrent_delete_and_set_completed_never_resurrect():
    # Arrange
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})

    # Act
    results = await asyncio.gather(
        service.delete_task(ALICE, t.task_id),
        service.set_completed(ALICE, t.task_id, True),
        return_exceptions=True,
    )

    # Assert
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], TaskNotFoundOrForbiddenError)
    assert await service.list_tasks(ALICE) == []


@pytest.mark.asyncio
async def test_ownership_isolation():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "secret"})

    with pytest.raises(TaskNotFoundOrForbiddenError):
        await service.set_completed(BOB, t.task_id, True)
    with pytest.raises(TaskNotFoundOrForbiddenError):
        await service.delete_task(BOB, t.task_id)
    assert await service.list_tasks(BOB) == []

    # untouched for the real owner
    assert await service.list_tasks(ALICE) == [t]


@pytest.mark.asyncio
async def test_foreign_task_and_missing_task_fail_the_same_way():
    service = make_service()
    t = await service.create_task(ALICE, {"name": "A"})

    with pytest.raises(TaskNotFoundOrForbiddenError) as foreign:
        await service.set_completed(BOB, t.task_id, True)
    with pytest.raises(TaskNotFoundOrForbiddenError) as missing:
        await service.set_completed(BOB, TaskId("nope"), True)

    assert type(foreign.value) is type(missing.value)


class _BrokenStore(InMemoryTaskStore):
    async def insert(self, task):
        raise PersistenceError("task store write failed")


@pytest.mark.asyncio
async def test_store_failure_propagates():
    service = TaskService(_BrokenStore(), FakeIdProvider(), FakeClock())

    with pytest.raises(PersistenceError):
        await service.create_task(ALICE, {"name": "A"})


from todox.adapters.system.id_provider_uuid import UuidIdProvider
from todox.adapters.system.clock_system import SystemClock

@pytest.mark.asyncio
async def test_create_sets_valid_uuid_v4_and_is_unique():
    # real providers for the UUID / UTC checks:
    service = TaskService(InMemoryTaskStore(), UuidIdProvider(), SystemClock())

    t1 = await service.create_task(ALICE, {"name": "A"})
    t2 = await service.create_task(ALICE, {"name": "B"})

    import uuid
    assert uuid.UUID(str(t1.task_id)).version == 4
    assert uuid.UUID(str(t2.task_id)).version == 4
    assert t1.task_id != t2.task_id
    assert t1.created_at.tzinfo is not None
    assert t1.created_at.utcoffset() == timedelta(0)


def test_in_memory_store_declares_the_store_port():
    from todox.ports.task_store import TaskStore

    assert TaskStore in InMemoryTaskStore.__mro__
