"""Product SQLAlchemy model (catalog store, read-only)"""

from sqlalchemy import Column, Integer, Text, Boolean, Numeric, Index
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.sql import text

from .base import CatalogBase


class Product(CatalogBase):
    """Product row in the authoritative catalog.

    This service only reads from the table. Only rows with ``is_active``
    set are eligible for search results or embedding.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_is_active", "is_active"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(precision=10, scale=2), nullable=True)
    category_id = Column(Integer, nullable=True)
    featured = Column(Boolean, nullable=False, server_default="false")
    new_arrival = Column(Boolean, nullable=False, server_default="false")
    is_active = Column(Boolean, nullable=False, server_default="true")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()"))
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()"))

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name!r}, active={self.is_active})>"
