"""
Storage collaborator used by the seating engine services.

Every call is its own committed unit of work, bounded in time, so records
read after a write always reflect it. Failures surface as StorageError and
are never retried here.
"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.config import settings
from db.base import Base
from db.session import AsyncSessionLocal, get_session_context
from services.errors import StorageError


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class Storage:
    """Thin async repository over SQLAlchemy sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        timeout_seconds: float = settings.storage_timeout_seconds,
    ):
        """
        Initialize storage.

        Args:
            session_factory: Factory producing AsyncSession instances
            timeout_seconds: Upper bound for a single storage call
        """
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    async def _run(self, operation: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error(f"Storage {operation} timed out after {self.timeout_seconds}s")
            raise StorageError(f"Storage {operation} timed out") from e
        except SQLAlchemyError as e:
            logger.error(f"Storage {operation} failed: {e}")
            raise StorageError(f"Storage {operation} failed: {e}") from e

    async def find(
        self,
        model: Type[ModelT],
        *criteria: Any,
        order_by: Optional[Sequence[Any]] = None,
    ) -> List[ModelT]:
        """
        Find records matching all criteria.

        Args:
            model: ORM model class
            *criteria: SQLAlchemy filter expressions
            order_by: Ordering; defaults to insertion order (created_at, id)

        Returns:
            List of detached records
        """
        if order_by is None:
            order_by = (model.created_at, model.id)

        async def _find():
            async with get_session_context(self.session_factory) as session:
                result = await session.execute(
                    select(model).where(*criteria).order_by(*order_by)
                )
                return list(result.scalars().all())

        return await self._run(f"find {model.__tablename__}", _find())

    async def get(self, model: Type[ModelT], record_id: Any) -> Optional[ModelT]:
        """Get a record by primary key, or None."""
        async def _get():
            async with get_session_context(self.session_factory) as session:
                return await session.get(model, record_id)

        return await self._run(f"get {model.__tablename__}", _get())

    async def create(self, model: Type[ModelT], **fields: Any) -> ModelT:
        """Insert a new record and return it with defaults populated."""
        async def _create():
            async with get_session_context(self.session_factory) as session:
                record = model(**fields)
                session.add(record)
                await session.flush()
                await session.refresh(record)
                return record

        return await self._run(f"create {model.__tablename__}", _create())

    async def update(self, model: Type[ModelT], *criteria: Any, **fields: Any) -> int:
        """
        Update every record matching the criteria.

        Returns:
            Number of rows changed
        """
        async def _update():
            async with get_session_context(self.session_factory) as session:
                result = await session.execute(
                    update(model).where(*criteria).values(**fields)
                )
                return result.rowcount

        return await self._run(f"update {model.__tablename__}", _update())

    async def save(self, record: ModelT) -> ModelT:
        """Persist a (possibly detached) record and return the merged copy."""
        async def _save():
            async with get_session_context(self.session_factory) as session:
                merged = await session.merge(record)
                await session.flush()
                await session.refresh(merged)
                return merged

        return await self._run(f"save {type(record).__tablename__}", _save())

    async def delete(self, model: Type[ModelT], record_id: Any) -> bool:
        """Delete a record by primary key. Returns False if it did not exist."""
        async def _delete():
            async with get_session_context(self.session_factory) as session:
                record = await session.get(model, record_id)
                if record is None:
                    return False
                await session.delete(record)
                return True

        return await self._run(f"delete {model.__tablename__}", _delete())

    async def count(self, model: Type[ModelT], *criteria: Any) -> int:
        """Count records matching all criteria."""
        async def _count():
            async with get_session_context(self.session_factory) as session:
                result = await session.execute(
                    select(func.count()).select_from(model).where(*criteria)
                )
                return result.scalar_one()

        return await self._run(f"count {model.__tablename__}", _count())
