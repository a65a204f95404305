from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Optional
import sqlalchemy as db
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from todox.ports.task_store import TaskStore
from todox.domain.task import Task, TaskId, OwnerId
from datetime import datetime, timezone
from todox.domain.errors import TaskAlreadyExistsError, PersistenceError

logger = logging.getLogger(__name__)


class SqlTaskStore(TaskStore):
    def __init__(self, url: str | Path, *, echo: bool = False) -> None:
        """
        url: e.g. 'sqlite+aiosqlite:///data/tasks.db' or a Path to a file (turned into a URL)
        """
        if isinstance(url, Path):
            url.parent.mkdir(parents=True, exist_ok=True)
            db_url = f"sqlite+aiosqlite:///{url}"
        else:
            db_url = url

        self.engine: AsyncEngine = create_async_engine(db_url, echo=echo)
        self.meta = db.MetaData()
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

        self.tasks = db.Table(
            "tasks",
            self.meta,
            db.Column("task_id", db.String, primary_key=True),
            db.Column("owner_id", db.String, nullable=False, index=True),
            db.Column("name", db.String, nullable=False),
            db.Column("completed", db.Boolean, nullable=False, default=False),
            db.Column("created_at", db.DateTime(timezone=True), nullable=False),
        )

    async def _ensure_schema(self) -> None:
        # create the table once per store instance
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self.engine.begin() as conn:
                await conn.run_sync(self.meta.create_all)
            self._schema_ready = True

    async def dispose(self) -> None:
        await self.engine.dispose()

    def _encode_dt(self, dt: datetime) -> datetime:
        return dt.astimezone(timezone.utc)

    def _decode_dt(self, value: datetime) -> datetime:
        # SQLite drops tzinfo; stored values are always UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def _to_row(self, task: Task) -> dict:
        return {
            'task_id': str(task.task_id),
            'owner_id': str(task.owner_id),
            'name': task.name,
            'completed': bool(task.completed),
            'created_at': self._encode_dt(task.created_at),
        }

    def _from_row(self, row) -> Task:
        return Task(
            task_id=TaskId(row["task_id"]),
            owner_id=OwnerId(row["owner_id"]),
            name=row["name"],
            completed=bool(row["completed"]),
            created_at=self._decode_dt(row["created_at"]),
        )

    def _owned(self, owner_id: OwnerId, task_id: TaskId):
        return db.and_(
            self.tasks.c.task_id == str(task_id),
            self.tasks.c.owner_id == str(owner_id),
        )

    async def insert(self, task: Task) -> Task:
        await self._ensure_schema()
        stmt = db.insert(self.tasks).values(**self._to_row(task))
        try:
            async with self.engine.begin() as conn:
                await conn.execute(stmt)
        except IntegrityError:
            # primary key conflict
            raise TaskAlreadyExistsError(task.task_id)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Insert of task %s failed: %s", task.task_id, e)
            raise PersistenceError("task store write failed") from e
        return task

    async def find_owned(self, owner_id: OwnerId, completed: Optional[bool] = None) -> list[Task]:
        await self._ensure_schema()
        stmt = db.select(self.tasks).where(self.tasks.c.owner_id == str(owner_id))
        if completed is not None:
            stmt = stmt.where(self.tasks.c.completed == completed)
        # stable ordering: ASC + tie-breaker on task_id
        stmt = stmt.order_by(self.tasks.c.created_at.asc(), self.tasks.c.task_id.asc())
        try:
            async with self.engine.connect() as conn:
                rows = (await conn.execute(stmt)).mappings().all()
                return [self._from_row(r) for r in rows]
        except (SQLAlchemyError, OSError) as e:
            logger.error("Listing tasks of owner %s failed: %s", owner_id, e)
            raise PersistenceError("task store read failed") from e

    async def update_if_owned(self, owner_id: OwnerId, task_id: TaskId, *, completed: bool) -> Optional[Task]:
        await self._ensure_schema()
        stmt = (
            db.update(self.tasks)
            .where(self._owned(owner_id, task_id))
            .values(completed=completed)
            .returning(*self.tasks.c)
        )
        try:
            async with self.engine.begin() as conn:
                row = (await conn.execute(stmt)).mappings().first()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Update of task %s failed: %s", task_id, e)
            raise PersistenceError("task store write failed") from e
        if row is None:
            return None
        return self._from_row(row)

    async def delete_if_owned(self, owner_id: OwnerId, task_id: TaskId) -> int:
        await self._ensure_schema()
        stmt = db.delete(self.tasks).where(self._owned(owner_id, task_id))
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                return int(result.rowcount)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Delete of task %s failed: %s", task_id, e)
            raise PersistenceError("task store write failed") from e
