from enum import Enum

class TaskFilter(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"

    def __str__(self):
        return self.value

    def as_completed(self) -> bool | None:
        """Maps the filter onto the optional `completed` predicate of the store."""
        match self:
            case TaskFilter.COMPLETED:
                return True
            case TaskFilter.INCOMPLETE:
                return False
            case _:
                return None

    def empty_message(self) -> str:
        match self:
            case TaskFilter.COMPLETED:
                return "No completed tasks to show."
            case TaskFilter.INCOMPLETE:
                return "No incomplete tasks to show."
            case _:
                return "No tasks to show."
