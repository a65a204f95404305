from typing import Protocol, Optional
from todox.domain.task import Task, TaskId, OwnerId


### COMMENTS
# ==========================================================
# Task store contract (ports/task_store.py).
# ==========================================================
# Protocol for the task persistence layer.
# - Technology agnostic (memory, SQL database, document store).
# - Every read and write is scoped by `owner_id`: ownership is part of the
#   query predicate, never checked after fetching.
# - "Nothing matched" is a normal result (None / 0), not an exception; the
#   service decides what it means.
# - Adapters map technical errors onto PersistenceError.
# - Listing order: `created_at` ASC, tiebreaker `task_id` ASC.


class TaskStore(Protocol):
    """Async interface for persisting `Task` objects of many owners.

    Implementations must:
    - make every conditional operation a single atomic store call,
    - map technical errors onto domain errors,
    - sort listings stably (`created_at` ASC, then `task_id` ASC),
    - perform no business validation (that belongs to the service).
    """

    async def insert(self, task: Task) -> Task:
        """Stores a new `Task`.

        Returns:
            Task: The stored object.

        Domain errors:
            TaskAlreadyExistsError: A record with the same `task_id` exists.
            PersistenceError: The storage rejected the write.
        """

    async def find_owned(self, owner_id: OwnerId, completed: Optional[bool] = None) -> list[Task]:
        """Returns every task of `owner_id`, optionally only those whose
        `completed` flag equals `completed`.

        Sorting:
            `created_at` ASC, then `task_id` ASC.

        Returns:
            list[Task]: Possibly empty; an owner without tasks is not an error.
        """

    async def update_if_owned(self, owner_id: OwnerId, task_id: TaskId, *, completed: bool) -> Optional[Task]:
        """Sets `completed` on the task matching both `task_id` and `owner_id`.

        Returns:
            Optional[Task]: The task after the update, or `None` when nothing matched.

        Notes:
            Only the `completed` field changes.
        """

    async def delete_if_owned(self, owner_id: OwnerId, task_id: TaskId) -> int:
        """Hard-deletes at most one task matching both `task_id` and `owner_id`.

        Returns:
            int: Number of deleted records (0 or 1).
        """
