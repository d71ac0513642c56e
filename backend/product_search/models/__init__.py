"""SQLAlchemy models for the catalog store and the vector store"""

from .base import CatalogBase, VectorBase
from .product import Product
from .product_embedding import ProductEmbedding, EMBEDDING_DIM

__all__ = [
    "CatalogBase",
    "VectorBase",
    "Product",
    "ProductEmbedding",
    "EMBEDDING_DIM",
]
