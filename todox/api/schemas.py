from datetime import timezone
from pydantic import BaseModel
from todox.domain.task import Task


class TaskOut(BaseModel):
    """Wire shape of a task: `{id, ownerId, name, completed, createdAt}`."""
    id: str
    ownerId: str
    name: str
    completed: bool
    createdAt: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskOut":
        created = task.created_at.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        return cls(
            id=str(task.task_id),
            ownerId=str(task.owner_id),
            name=task.name,
            completed=task.completed,
            createdAt=created.replace("+00:00", "Z"),
        )


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str
