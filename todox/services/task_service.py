import logging
from typing import Any, Mapping, Optional
from todox.ports.task_store import TaskStore
from todox.ports.id_provider import IdProvider
from todox.ports.clock import Clock
from todox.domain.task import Task, TaskId, OwnerId
from todox.domain.errors import TaskValidationError, TaskNotFoundOrForbiddenError
from todox.services.payloads import parse_draft

logger = logging.getLogger(__name__)


### COMMENTS
# ==========================================================
# Service layer (services/task_service.py): use cases.
# ==========================================================
# Role:
# - Mediates every task operation between an untrusted request and the
#   `TaskStore` port.
# - Validates input payloads (task shape, boolean flags).
# - Builds domain objects (Task) without knowing the storage technology.
#
# Rules:
# - The owner id always comes from a verified session and is passed in
#   explicitly; the service keeps no per-request state.
# - Each operation issues exactly one store call. Ownership is part of the
#   store predicate, so there is no fetch-then-check window.
# - Domain errors:
#     * bad input → `TaskValidationError`
#     * nothing matched owner + id → `TaskNotFoundOrForbiddenError`
#     * store failures (`PersistenceError`) pass through untouched.


def _require_bool(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise TaskValidationError(field, "must be a boolean")
    return value


class TaskService:
    """
    Use-case service for tasks (the task access controller).

    :param store: Implementation of the TaskStore port.
    :param ids: Source of new task ids.
    :param clock: Source of `created_at` timestamps (UTC).
    """
    def __init__(self, store: TaskStore, ids: IdProvider, clock: Clock) -> None:
        self.store = store
        self.ids = ids
        self.clock = clock

    async def create_task(self, owner_id: OwnerId, payload: Mapping[str, Any]) -> Task:
        """
            Creates a new task for `owner_id` and stores it.

            - Validation: `name` required and not blank, `completed` optional
              boolean, no other fields (`TaskValidationError` lists all violations).
            - `task_id` comes from the IdProvider, `created_at` from the Clock.
            - `completed` defaults to False.

            :param owner_id: Identity from the verified session.
            :param payload: Raw request body.
            :return: The stored `Task`.
            :raises TaskValidationError: When the payload has the wrong shape.
            :raises PersistenceError: When the store write fails.
        """
        draft = parse_draft(payload)

        task = Task(
            task_id=TaskId(self.ids.new_id()),
            owner_id=owner_id,
            name=draft.name,
            created_at=self.clock.now(),
            completed=draft.completed or False,
        )
        stored = await self.store.insert(task)
        logger.debug("Created task %s for owner %s", stored.task_id, owner_id)
        return stored

    async def list_tasks(self, owner_id: OwnerId, completed: Optional[bool] = None) -> list[Task]:
        """
        Returns the owner's tasks, oldest first.

        :param owner_id: Identity from the verified session.
        :param completed: Optional filter on the completion flag.
        :raises TaskValidationError: When the filter is not a boolean.
        :return: Possibly empty list ordered by `created_at` ASC.
        """
        if completed is not None:
            _require_bool("completed", completed)
        return await self.store.find_owned(owner_id, completed)

    async def set_completed(self, owner_id: OwnerId, task_id: TaskId, completed: bool) -> Task:
        """
            Sets the completion flag of an owned task.

            - Single conditional update scoped by `task_id` and `owner_id`.
            - Idempotent: repeating the call with the same value returns the same task.

            :param task_id: Identifier of the task to update.
            :param completed: Desired value of the flag.
            :raises TaskValidationError: If `completed` is not a boolean.
            :raises TaskNotFoundOrForbiddenError: If no task matches both ids.
            :return: The task after the update.
        """
        _require_bool("completed", completed)
        updated = await self.store.update_if_owned(owner_id, task_id, completed=completed)
        if updated is None:
            raise TaskNotFoundOrForbiddenError(task_id)
        return updated

    async def delete_task(self, owner_id: OwnerId, task_id: TaskId) -> int:
        """
            Removes an owned task.

            :param task_id: Identifier of the task to delete.
            :raises TaskNotFoundOrForbiddenError: If no task matches both ids
              (also on a second delete of the same task).
            :return: Number of deleted records (always 1 on success).
        """
        deleted = await self.store.delete_if_owned(owner_id, task_id)
        if deleted == 0:
            raise TaskNotFoundOrForbiddenError(task_id)
        logger.debug("Deleted task %s of owner %s", task_id, owner_id)
        return deleted
