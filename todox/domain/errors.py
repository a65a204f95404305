
### COMMENTS
# ============================================
# Domain error conventions
# ============================================
# - Stores (adapters):
#     * detect duplicates on insert
#     * map technical errors (IntegrityError, PyMongoError, OSError) to PersistenceError
#     * report "nothing matched" as None / 0, never as an exception
#
# - Services:
#     * validate user payloads and raise TaskValidationError
#     * turn "nothing matched owner + id" into TaskNotFoundOrForbiddenError
#
# - UI (HTTP, CLI):
#     * catch DomainError (or concrete classes) and show a short message
#     * everything else is a technical error (logged with stack trace)


class DomainError(Exception):
    """Base class for domain errors.
    Common parent of every business exception in the system, so that the UI
    can tell domain failures apart from technical ones (bugs, I/O).
    Not raised directly; use the subclasses.
    """


class TaskValidationError(DomainError):
    """Raised when an incoming payload does not match the task shape.
    Examples:
    - `name` is missing or blank,
    - `completed` is not a boolean,
    - an unknown field was sent.
    Raised only by the service (`TaskService`), before anything reaches the store.
    Carries the first offending `field`, a readable `message` and the full
    list of `violations` as `(field, message)` pairs.
    """
    def __init__(self, field: str, message: str, violations: tuple[tuple[str, str], ...] = ()):
        self.field = field
        self.message = message
        self.violations = violations or ((field, message),)
        super().__init__(self.__str__())
    def __str__(self):
        return f"Invalid field '{self.field}': {self.message}"


class UnauthenticatedError(DomainError):
    """Raised by the session verifier for a missing, malformed, badly signed
    or expired session token. Terminal for the request: there is no fallback identity.
    """
    def __init__(self, reason: str = "missing or invalid session"):
        self.reason = reason
        super().__init__(self.__str__())
    def __str__(self):
        return f"Unauthenticated: {self.reason}"


class TaskNotFoundOrForbiddenError(DomainError):
    """Raised when no task matches both `task_id` and the caller's owner id.
    Nonexistence and foreign ownership are deliberately the same error, so a
    caller cannot probe for tasks that belong to somebody else.
    """
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Task {self.task_id} not found or not owned by the caller."


class PersistenceError(DomainError):
    """Raised by store adapters when the underlying storage is unavailable
    or rejects the operation. Never retried automatically.
    """


class TaskAlreadyExistsError(PersistenceError):
    """Raised when an insert collides with an existing `task_id`.
    Ids are generated by the system, so this points at a broken IdProvider.
    """
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(self.__str__())
    def __str__(self):
        return f"Task with id {self.task_id} already exists."
