"""Catalog store client - Implementation of CatalogStorePort.

Read-only access to the ``products`` table in the primary relational store.
"""

import asyncio
from typing import Any, Awaitable, List, Sequence, Set

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ...database import scoped_session
from ...domain.search import CatalogStoreError, CatalogStorePort, ProductRecord, order_by_ids
from ...models import Product
from ...observability.logging_config import get_logger

logger = get_logger(__name__)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_product_record(product: Product) -> ProductRecord:
    return ProductRecord(
        id=product.id,
        name=product.name,
        description=product.description,
        price=product.price,
        active=bool(product.is_active),
        category_id=product.category_id,
        featured=bool(product.featured),
        new_arrival=bool(product.new_arrival),
        created_at=product.created_at,
    )


class SqlCatalogStoreClient(CatalogStorePort):
    """Catalog adapter backed by SQLAlchemy.

    Args:
        session_factory: Async session factory bound to the catalog engine
        query_timeout: Deadline in seconds for each query
    """

    def __init__(self, session_factory: async_sessionmaker, query_timeout: float = 10.0):
        self._session_factory = session_factory
        self.query_timeout = query_timeout

    async def get_active_products(self, ids: Sequence[int]) -> List[ProductRecord]:
        if not ids:
            return []

        query = select(Product).where(Product.id.in_(list(ids)), Product.is_active.is_(True))
        products = await self._fetch(query, "active product lookup")
        return order_by_ids(products, ids)

    async def list_all_active_ids(self) -> Set[int]:
        async def run() -> Set[int]:
            async with scoped_session(self._session_factory) as session:
                result = await session.execute(select(Product.id).where(Product.is_active.is_(True)))
                return {int(pid) for pid in result.scalars().all()}

        return await self._with_deadline(run(), "active id listing")

    async def get_all_active(self) -> List[ProductRecord]:
        query = (
            select(Product)
            .where(Product.is_active.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
        )
        return await self._fetch(query, "active product listing")

    async def keyword_search(self, term: str, limit: int) -> List[ProductRecord]:
        needle = term.strip()
        if not needle or limit <= 0:
            return []

        pattern = f"%{escape_like(needle)}%"
        query = (
            select(Product)
            .where(
                Product.is_active.is_(True),
                or_(
                    Product.name.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
        )
        return await self._fetch(query, "keyword search")

    async def _fetch(self, query: Any, operation: str) -> List[ProductRecord]:
        async def run() -> List[ProductRecord]:
            async with scoped_session(self._session_factory) as session:
                result = await session.execute(query)
                return [to_product_record(p) for p in result.scalars().all()]

        return await self._with_deadline(run(), operation)

    async def _with_deadline(self, awaitable: Awaitable[Any], operation: str) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.query_timeout)
        except asyncio.TimeoutError as e:
            raise CatalogStoreError(f"Catalog {operation} timed out after {self.query_timeout}s") from e
        except (SQLAlchemyError, OSError) as e:
            raise CatalogStoreError(f"Catalog {operation} failed: {e}") from e
