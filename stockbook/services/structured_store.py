from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from sqlalchemy import delete, insert, literal_column, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker

from stockbook.db import make_async_engine, make_async_sessionmaker
from stockbook.entities import Category, Price, Product, SaleRecord
from stockbook.errors import ReadFailure, StoreUnavailable, WriteFailure
from stockbook.models import SCHEMA_VERSION, Base, CategoryRow, ProductRow, SaleRow, SchemaMeta

logger = logging.getLogger(__name__)

CATEGORIES = 'categories'
PRODUCTS = 'products'
SALES = 'sales'

_ROW_TYPES = {CATEGORIES: CategoryRow, PRODUCTS: ProductRow, SALES: SaleRow}

Entity = Category | Product | SaleRecord


def _row_type(collection: str):
    try:
        return _ROW_TYPES[collection]
    except KeyError:
        raise ValueError(f'Unknown collection {collection!r}') from None


def _to_row(collection: str, entity: Entity):
    if collection == CATEGORIES:
        return CategoryRow(id=entity.id, name=entity.name, image=entity.image)
    if collection == PRODUCTS:
        return ProductRow(
            id=entity.id,
            name=entity.name,
            price_retail=entity.price.retail,
            price_wholesale=entity.price.wholesale,
            quantity=entity.quantity,
            category_id=entity.category_id,
            barcode=entity.barcode,
            image=entity.image,
        )
    return SaleRow(
        id=entity.id,
        product_id=entity.product_id,
        product_name=entity.product_name,
        product_image=entity.product_image,
        quantity=entity.quantity,
        sold_at_price=entity.sold_at_price,
        timestamp=entity.timestamp,
    )


def _to_entity(row) -> Entity:
    if isinstance(row, CategoryRow):
        return Category(id=row.id, name=row.name, image=row.image)
    if isinstance(row, ProductRow):
        return Product(
            id=row.id,
            name=row.name,
            price=Price(retail=row.price_retail, wholesale=row.price_wholesale),
            quantity=row.quantity,
            category_id=row.category_id,
            barcode=row.barcode,
            image=row.image,
        )
    return SaleRecord(
        id=row.id,
        product_id=row.product_id,
        product_name=row.product_name,
        product_image=row.product_image,
        quantity=row.quantity,
        sold_at_price=row.sold_at_price,
        timestamp=row.timestamp,
    )


async def _ensure_schema(conn: AsyncConnection) -> None:
    # create_all only creates missing tables, so a version bump never touches existing data.
    await conn.run_sync(Base.metadata.create_all)
    current = (await conn.execute(select(SchemaMeta.version).where(SchemaMeta.id == 1))).scalar_one_or_none()
    if current is None:
        await conn.execute(insert(SchemaMeta).values(id=1, version=SCHEMA_VERSION))
        logger.info('Created structured store schema at version %s', SCHEMA_VERSION)
    elif current < SCHEMA_VERSION:
        await conn.execute(update(SchemaMeta).where(SchemaMeta.id == 1).values(version=SCHEMA_VERSION))
        logger.info('Upgraded structured store schema from version %s to %s', current, SCHEMA_VERSION)
    elif current > SCHEMA_VERSION:
        logger.warning('Structured store schema version %s is newer than supported %s', current, SCHEMA_VERSION)


class StructuredStore:
    """Asynchronous per-collection entity store on SQLite, keyed by entity id."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    async def open(self) -> None:
        if self._sessions is not None:
            return
        engine = make_async_engine(self.url)
        try:
            async with engine.begin() as conn:
                await _ensure_schema(conn)
        except (SQLAlchemyError, OSError) as exc:
            await engine.dispose()
            raise StoreUnavailable(f'Could not open structured store at {self.url}') from exc
        self._engine = engine
        self._sessions = make_async_sessionmaker(engine)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None

    def _session(self) -> AsyncSession:
        if self._sessions is None:
            raise StoreUnavailable('Structured store is not open')
        return self._sessions()

    async def read_all(self, collection: str) -> list[Entity]:
        row_type = _row_type(collection)
        try:
            async with self._session() as session:
                result = await session.execute(select(row_type).order_by(literal_column('rowid')))
                rows = result.scalars().all()
        except (SQLAlchemyError, StoreUnavailable) as exc:
            raise ReadFailure(f'Failed to read collection {collection}') from exc
        return [_to_entity(row) for row in rows]

    async def get_all(self, collection: str) -> list[Entity]:
        try:
            return await self.read_all(collection)
        except ReadFailure:
            logger.exception('Failed to read collection %s; continuing with an empty list', collection)
            return []

    async def upsert(self, collection: str, entity: Entity) -> None:
        _row_type(collection)
        row = _to_row(collection, entity)
        try:
            async with self._session() as session, session.begin():
                await session.merge(row)
        except SQLAlchemyError as exc:
            raise WriteFailure(f'Failed to save {entity.id!r} to {collection}') from exc

    async def delete(self, collection: str, entity_id: str) -> None:
        row_type = _row_type(collection)
        try:
            async with self._session() as session, session.begin():
                await session.execute(delete(row_type).where(row_type.id == entity_id))
        except SQLAlchemyError as exc:
            raise WriteFailure(f'Failed to delete {entity_id!r} from {collection}') from exc

    async def replace_all(self, collections: Mapping[str, Sequence[Entity]]) -> None:
        """Clear and refill every named collection in a single transaction."""
        plan = [(name, _row_type(name), [_to_row(name, entity) for entity in entities]) for name, entities in collections.items()]
        try:
            async with self._session() as session, session.begin():
                for _name, row_type, rows in plan:
                    await session.execute(delete(row_type))
                    session.add_all(rows)
        except SQLAlchemyError as exc:
            names = ', '.join(name for name, _, _ in plan)
            raise WriteFailure(f'Failed to replace collections: {names}') from exc
        logger.info('Replaced collections %s', {name: len(rows) for name, _, rows in plan})

    async def commit_sale(
        self,
        sale: SaleRecord,
        *,
        product: Product | None = None,
        removed_product_id: str | None = None,
    ) -> None:
        """Append a sale and apply its stock change to the product in one transaction."""
        try:
            async with self._session() as session, session.begin():
                session.add(_to_row(SALES, sale))
                if product is not None:
                    await session.merge(_to_row(PRODUCTS, product))
                if removed_product_id is not None:
                    await session.execute(delete(ProductRow).where(ProductRow.id == removed_product_id))
        except SQLAlchemyError as exc:
            raise WriteFailure(f'Failed to record sale {sale.id!r}') from exc
