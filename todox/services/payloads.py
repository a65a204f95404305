from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError, field_validator
from todox.domain.errors import TaskValidationError


class TaskDraft(BaseModel):
    """Shape of a create payload: `name` required, `completed` optional, nothing else."""
    model_config = ConfigDict(extra="forbid")

    name: StrictStr
    completed: Optional[StrictBool] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value


class StatusChange(BaseModel):
    """Shape of a status payload: a strict boolean `completed`."""
    completed: StrictBool


def _to_task_validation_error(exc: ValidationError) -> TaskValidationError:
    violations = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "payload"
        violations.append((field, err["msg"]))
    field, message = violations[0]
    return TaskValidationError(field, message, tuple(violations))


def parse_draft(payload: Any) -> TaskDraft:
    """
        Validates a create payload.

        :param payload: Raw, untrusted request body (normally a dict).
        :raises TaskValidationError: With every violation pydantic reported.
        :return: The validated `TaskDraft`.
    """
    try:
        return TaskDraft.model_validate(payload)
    except ValidationError as e:
        raise _to_task_validation_error(e) from e


def parse_status_change(payload: Any) -> StatusChange:
    try:
        return StatusChange.model_validate(payload)
    except ValidationError as e:
        raise _to_task_validation_error(e) from e
