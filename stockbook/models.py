from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

SCHEMA_VERSION = 3


class DecimalText(TypeDecorator):
    """Decimal stored as its exact text form; SQLite has no native decimal type."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return format(Decimal(value), 'f')

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class ScalarBase(DeclarativeBase):
    pass


class SchemaMeta(Base):
    __tablename__ = 'schema_meta'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)


class CategoryRow(Base):
    __tablename__ = 'categories'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default='')
    image: Mapped[str] = mapped_column(Text, nullable=False, default='')


class ProductRow(Base):
    __tablename__ = 'products'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default='')
    price_retail: Mapped[Decimal] = mapped_column(DecimalText(), nullable=False)
    price_wholesale: Mapped[Decimal | None] = mapped_column(DecimalText())
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category_id: Mapped[str] = mapped_column(Text, nullable=False, default='')
    barcode: Mapped[str] = mapped_column(Text, nullable=False, default='')
    image: Mapped[str] = mapped_column(Text, nullable=False, default='')


class SaleRow(Base):
    __tablename__ = 'sales'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    product_id: Mapped[str] = mapped_column(Text, nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False, default='')
    product_image: Mapped[str] = mapped_column(Text, nullable=False, default='')
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    sold_at_price: Mapped[Decimal] = mapped_column(DecimalText(), nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class ScalarRow(ScalarBase):
    __tablename__ = 'scalars'

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
