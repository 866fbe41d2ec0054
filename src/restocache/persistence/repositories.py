"""Store gateway over the restaurant table.

Each operation runs in its own session and under the store timeout.
Timeouts and database errors surface as ``StoreUnavailableError``; a
primary-key collision on insert surfaces as ``AlreadyExistsError``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from restocache.config import settings
from restocache.core.errors import AlreadyExistsError, StoreUnavailableError
from restocache.core.gateways import StoreIndex
from restocache.core.model import Restaurant
from restocache.observability.metrics import get_metrics
from restocache.persistence.db import get_session_factory, session_context
from restocache.persistence.tables import RestaurantTable

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UPDATABLE = frozenset({"cuisine", "region", "rating", "rating_count"})


class RestaurantRepository:
    """Repository for restaurant records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        timeout: float | None = None,
    ):
        self._session_factory = session_factory
        self.timeout = timeout if timeout is not None else settings.store_timeout

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _in_session() -> T:
            factory = self._session_factory or get_session_factory()
            async with session_context(factory) as session:
                return await work(session)

        start = time.monotonic()
        try:
            return await asyncio.wait_for(_in_session(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Store {operation} timed out after {self.timeout}s")
            raise StoreUnavailableError(f"store {operation} timed out") from e
        except IntegrityError:
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Store {operation} failed", exc_info=True)
            raise StoreUnavailableError(f"store {operation} failed: {e}") from e
        finally:
            get_metrics().store_operation_duration_seconds.labels(operation=operation).observe(
                time.monotonic() - start
            )

    # -------------------------------------------------------------------------
    # Keyed operations
    # -------------------------------------------------------------------------

    async def get(self, name: str) -> Restaurant | None:
        async def _work(session: AsyncSession) -> Restaurant | None:
            row = await session.get(RestaurantTable, name)
            return row.to_model() if row is not None else None

        return await self._run("get", _work)

    async def put(self, restaurant: Restaurant) -> None:
        async def _work(session: AsyncSession) -> None:
            session.add(RestaurantTable(**restaurant.model_dump()))
            await session.flush()

        try:
            await self._run("put", _work)
        except IntegrityError as e:
            raise AlreadyExistsError(restaurant.name) from e

    async def update(
        self,
        name: str,
        attrs: dict[str, Any],
        expected_rating_count: int | None = None,
    ) -> bool:
        """Apply ``attrs`` to one record.

        With ``expected_rating_count`` the write only happens if the stored
        count still matches. Returns False when no row was written.
        """
        unknown = set(attrs) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update attributes: {sorted(unknown)}")

        stmt = update(RestaurantTable).where(RestaurantTable.name == name)
        if expected_rating_count is not None:
            stmt = stmt.where(RestaurantTable.rating_count == expected_rating_count)
        stmt = stmt.values(**attrs)

        async def _work(session: AsyncSession) -> bool:
            result = await session.execute(stmt)
            return bool(result.rowcount)  # type: ignore[attr-defined]

        return await self._run("update", _work)

    async def delete(self, name: str) -> bool:
        stmt = delete(RestaurantTable).where(RestaurantTable.name == name)

        async def _work(session: AsyncSession) -> bool:
            result = await session.execute(stmt)
            return bool(result.rowcount)  # type: ignore[attr-defined]

        return await self._run("delete", _work)

    # -------------------------------------------------------------------------
    # Index queries
    # -------------------------------------------------------------------------

    async def query_by_index(
        self,
        index: StoreIndex,
        predicate: dict[str, str],
        limit: int,
        min_rating: float | None = None,
    ) -> list[Restaurant]:
        """Rows matching ``predicate``, highest rating first."""
        stmt = select(RestaurantTable)
        if index in (StoreIndex.REGION, StoreIndex.REGION_CUISINE):
            stmt = stmt.where(RestaurantTable.region == predicate["region"])
        if index in (StoreIndex.CUISINE, StoreIndex.REGION_CUISINE):
            stmt = stmt.where(RestaurantTable.cuisine == predicate["cuisine"])
        if min_rating is not None:
            stmt = stmt.where(RestaurantTable.rating >= min_rating)
        stmt = stmt.order_by(RestaurantTable.rating.desc(), RestaurantTable.name).limit(limit)

        async def _work(session: AsyncSession) -> list[Restaurant]:
            result = await session.execute(stmt)
            return [row.to_model() for row in result.scalars().all()]

        return await self._run(f"query_{index.value}", _work)
