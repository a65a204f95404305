from todox.ports.task_store import TaskStore
from todox.domain.task import Task, TaskId, OwnerId
from todox.domain.errors import TaskAlreadyExistsError
from typing import Iterable, Optional

### COMMENTS
# ==========================================================
# In-memory task store (adapters/memory/task_store.py).
# ==========================================================
# Implementation of the `TaskStore` port kept in a dict.
#
# - Used by tests, demos and the default `memory` store kind.
# - Data lives in `_data: dict[TaskId, Task]` for the lifetime of the object.
# - No method awaits between reading and writing `_data`, so every
#   conditional operation is atomic under a single event loop.
# - Contract rules:
#     * `insert` → raises `TaskAlreadyExistsError` for a known id,
#     * `find_owned` → owner filter, optional `completed` filter, sort ASC + tiebreaker,
#     * `update_if_owned` / `delete_if_owned` → `None` / `0` when owner + id do not match.



class InMemoryTaskStore(TaskStore):
    """
        Initializes the store with an optional collection of seed tasks.
        :param initial: Iterable of Task objects to preload.
        For duplicate task_id values the last one wins while loading
        (seed only, not part of the API).
    """
    def __init__(self, initial: Iterable[Task] | None = None) -> None:
        self._data: dict[TaskId, Task] = {}
        for t in (initial or []):
            self._data[t.task_id] = t

    async def insert(self, task: Task) -> Task:
        """
            Adds a new task.

            - Collisions are detected by `task.task_id` (key of `_data`).
            - An existing entry is never overwritten.

            :raises TaskAlreadyExistsError: If the id is already stored.
            :return: The stored task.
        """
        if task.task_id in self._data:
            raise TaskAlreadyExistsError(task.task_id)
        self._data[task.task_id] = task
        return task

    def _owned(self, owner_id: OwnerId, task_id: TaskId) -> Optional[Task]:
        task = self._data.get(task_id)
        if task is None or task.owner_id != owner_id:
            return None
        return task

    async def find_owned(self, owner_id: OwnerId, completed: Optional[bool] = None) -> list[Task]:
        tasks = [t for t in self._data.values() if t.owner_id == owner_id]
        if completed is not None:
            tasks = [t for t in tasks if t.completed == completed]

        # sort with tiebreaker
        tasks.sort(key=lambda t: (t.created_at, t.task_id))
        return tasks

    async def update_if_owned(self, owner_id: OwnerId, task_id: TaskId, *, completed: bool) -> Optional[Task]:
        task = self._owned(owner_id, task_id)
        if task is None:
            return None
        updated = task.with_completed(completed)
        self._data[task_id] = updated
        return updated

    async def delete_if_owned(self, owner_id: OwnerId, task_id: TaskId) -> int:
        if self._owned(owner_id, task_id) is None:
            return 0
        del self._data[task_id]
        return 1
