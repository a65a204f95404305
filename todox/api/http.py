"""
todox HTTP API
==============
FastAPI application exposing the task service.

Endpoints:
    POST   /todo              → create a task          (201)
    GET    /todo              → list own tasks          (200, ?completed=true|false)
    PATCH  /todo/{todoID}     → set completion flag     (200)
    DELETE /todo/{todoID}     → delete a task           (200)
    GET    /health            → liveness probe

Every /todo route resolves the caller once per request from the session
cookie (`current_owner` dependency) and passes the identity into the service.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from todox.api.schemas import ErrorOut, MessageOut, TaskOut
from todox.domain.errors import (
    PersistenceError,
    TaskNotFoundOrForbiddenError,
    TaskValidationError,
    UnauthenticatedError,
)
from todox.domain.task import OwnerId, TaskId
from todox.ports.session_verifier import SessionVerifier
from todox.services.payloads import parse_status_change
from todox.services.task_service import TaskService

logger = logging.getLogger(__name__)

DEFAULT_COOKIE = "todox-session"


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return await request.json()
    except ValueError:
        raise TaskValidationError("payload", "body is not valid JSON")


def _parse_completed_query(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    match raw.lower():
        case "true":
            return True
        case "false":
            return False
        case _:
            raise TaskValidationError("completed", "must be 'true' or 'false'")


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(TaskValidationError)
    async def on_validation(request: Request, exc: TaskValidationError) -> JSONResponse:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        fields = [{"field": f, "message": m} for f, m in exc.violations]
        return _error(400, "Invalid field used.", fields=fields)

    @app.exception_handler(UnauthenticatedError)
    async def on_unauthenticated(request: Request, exc: UnauthenticatedError) -> JSONResponse:
        logger.info("%s %s unauthenticated: %s", request.method, request.url.path, exc.reason)
        return _error(401, "Not authenticated.")

    @app.exception_handler(TaskNotFoundOrForbiddenError)
    async def on_not_found(request: Request, exc: TaskNotFoundOrForbiddenError) -> JSONResponse:
        return _error(404, "Todo not found or unauthorized access.")

    @app.exception_handler(PersistenceError)
    async def on_persistence(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("%s %s failed in the task store: %s", request.method, request.url.path, exc)
        return _error(500, "Todo operation failed.")

    @app.middleware("http")
    async def on_unexpected(request: Request, call_next):
        # domain errors are answered by the handlers above and never get here
        try:
            return await call_next(request)
        except Exception:
            logger.exception("%s %s crashed", request.method, request.url.path)
            return _error(500, "Todo operation failed.")


def create_app(
    service: TaskService,
    verifier: SessionVerifier,
    *,
    cookie_name: str = DEFAULT_COOKIE,
) -> FastAPI:
    """Builds the FastAPI app around an already wired service and verifier."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        dispose = getattr(service.store, "dispose", None)
        if dispose is not None:
            await dispose()

    app = FastAPI(title="todox", version="1.0.0", lifespan=lifespan)
    _register_error_handlers(app)

    def current_owner(request: Request) -> OwnerId:
        return verifier.verify(request.cookies.get(cookie_name))

    errors = {
        400: {"model": ErrorOut},
        401: {"model": ErrorOut},
        500: {"model": ErrorOut},
    }
    not_found = {**errors, 404: {"model": ErrorOut}}

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post("/todo", status_code=201, response_model=TaskOut, responses=errors)
    async def create_todo(request: Request, owner: OwnerId = Depends(current_owner)) -> TaskOut:
        payload = await _read_json(request)
        task = await service.create_task(owner, payload)
        return TaskOut.from_task(task)

    @app.get("/todo", response_model=list[TaskOut], responses=errors)
    async def list_todos(completed: Optional[str] = None, owner: OwnerId = Depends(current_owner)) -> list[TaskOut]:
        tasks = await service.list_tasks(owner, _parse_completed_query(completed))
        return [TaskOut.from_task(t) for t in tasks]

    @app.patch("/todo/{todoID}", response_model=TaskOut, responses=not_found)
    async def update_todo_status(todoID: str, request: Request, owner: OwnerId = Depends(current_owner)) -> TaskOut:
        change = parse_status_change(await _read_json(request))
        task = await service.set_completed(owner, TaskId(todoID), change.completed)
        return TaskOut.from_task(task)

    @app.delete("/todo/{todoID}", response_model=MessageOut, responses=not_found)
    async def delete_todo(todoID: str, owner: OwnerId = Depends(current_owner)) -> MessageOut:
        await service.delete_task(owner, TaskId(todoID))
        return MessageOut(message="Todo deleted successfully.")

    return app


def app_from_env() -> FastAPI:
    """uvicorn factory: wires the app from environment settings."""
    from todox.bootstrap import build_service, build_verifier
    from todox.config import get_settings

    settings = get_settings()
    verifier = build_verifier(settings)
    return create_app(
        build_service(settings),
        verifier,
        cookie_name=settings.session_cookie,
    )
