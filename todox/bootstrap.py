from __future__ import annotations

import logging

from todox.config import Settings, STORE_KINDS
from todox.ports.task_store import TaskStore
from todox.services.task_service import TaskService
from todox.adapters.memory.task_store import InMemoryTaskStore
from todox.adapters.system.clock_system import SystemClock
from todox.adapters.system.id_provider_uuid import UuidIdProvider
from todox.adapters.auth.jwt_session import JwtSessionVerifier

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> TaskStore:
    """Creates the store adapter named by `settings.store`.
    - memory -> InMemory (lost on restart)
    - sql    -> SQLAlchemy async engine on `database_url`
    - mongo  -> motor collection `todo_collection` in `mongo_db`
    """
    if settings.store == "memory":
        return InMemoryTaskStore()
    if settings.store == "sql":
        from todox.adapters.sql.task_store import SqlTaskStore
        return SqlTaskStore(settings.database_url)
    if settings.store == "mongo":
        from todox.adapters.mongo.task_store import MongoTaskStore
        return MongoTaskStore.from_uri(settings.mongo_uri, settings.mongo_db, settings.todo_collection)
    raise ValueError(f"Unknown store kind {settings.store!r}, expected one of {', '.join(STORE_KINDS)}")


def build_service(settings: Settings, store: TaskStore | None = None) -> TaskService:
    store = store if store is not None else build_store(settings)
    logger.debug("Task store: %s", type(store).__name__)
    return TaskService(store, UuidIdProvider(), SystemClock())


# published example values; anyone can sign tokens with them
PUBLIC_SECRETS = frozenset({"dev-only-session-secret-change-me-please", "dev-secret-change-me"})


def build_verifier(settings: Settings) -> JwtSessionVerifier:
    """Session verifier for the configured secret.

    :raises ValueError: When TODOX_SESSION_SECRET is unset or a published example value.
    """
    if not settings.session_secret or settings.session_secret in PUBLIC_SECRETS:
        raise ValueError("TODOX_SESSION_SECRET must be set to a private value")
    return JwtSessionVerifier(settings.session_secret, settings.session_ttl_seconds)
