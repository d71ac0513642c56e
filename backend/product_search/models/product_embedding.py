"""ProductEmbedding Model - Vector embeddings for product semantic search."""

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, Integer, Index, text
from sqlalchemy.dialects.postgresql import TIMESTAMP

from .base import VectorBase

EMBEDDING_DIM = 384


class ProductEmbedding(VectorBase):
    """Product embedding vectors for semantic search.

    Stores three embeddings per product, all produced by the same
    sentence-transformers model and L2-normalized, so that pgvector's cosine
    distance ``<=>`` yields ``similarity = 1 - distance``.

    Key Design Principles:
    - One row per product (UNIQUE product_id), written by upsert only
    - product_id references the catalog store, which lives in another
      database, so there is no foreign key
    - HNSW index on combined_embedding for fast cosine k-NN

    Attributes:
        id: Surrogate primary key
        product_id: Catalog product id (unique)
        title_embedding: Embedding of the product name
        description_embedding: Embedding of the product description
        combined_embedding: Embedding of "name description" (trimmed)
        created_at: Creation timestamp
        updated_at: Last upsert timestamp

    Example Query (Top 5 similar products):
        SELECT product_id, 1 - (combined_embedding <=> :query_vector) AS similarity
        FROM product_embeddings
        ORDER BY combined_embedding <=> :query_vector
        LIMIT 5
    """

    __tablename__ = "product_embeddings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, nullable=False)

    title_embedding = Column(Vector(EMBEDDING_DIM), nullable=False)
    description_embedding = Column(Vector(EMBEDDING_DIM), nullable=False)
    combined_embedding = Column(Vector(EMBEDDING_DIM), nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=datetime.utcnow, server_default=text("NOW()"))
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        server_default=text("NOW()"),
    )

    __table_args__ = (
        # Upsert target: at most one embedding row per product
        Index("idx_product_embeddings_product_id", "product_id", unique=True),
        # HNSW index is created in the migration (vector_cosine_ops)
    )

    def __repr__(self) -> str:
        return f"<ProductEmbedding(id={self.id}, product_id={self.product_id})>"
