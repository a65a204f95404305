from typing import NewType
from datetime import datetime
from dataclasses import dataclass, replace

TaskId = NewType("TaskId", str)
OwnerId = NewType("OwnerId", str)

@dataclass(frozen=True)
class Task():
    """
    Domain model of a single to-do item; immutable; owned by exactly one user;
    `created_at` is an aware UTC datetime supplied by the service.
    """
    task_id: TaskId
    owner_id: OwnerId
    name: str
    created_at: datetime
    completed: bool = False

    def with_completed(self, completed: bool) -> "Task":
        """Returns a copy with a new completion flag; every other field is kept."""
        return replace(self, completed=completed)


### COMMENTS
# ======================================
# Task: the only entity
# ======================================
# - `task_id` and `created_at` come from the service (IdProvider / Clock ports),
#   never from the client.
# - `owner_id` is fixed at creation; every store query is scoped by it.
# - `completed` is the only field that changes after creation. Since the
#   dataclass is frozen, a change means a new instance (`with_completed`).
#
# Field order: required fields first, defaults last (dataclass __init__ rule).
