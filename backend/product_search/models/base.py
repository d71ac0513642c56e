"""Base SQLAlchemy declarative bases for both stores.

The catalog and the vector store live in different databases, so each gets
its own metadata. Migrations only ever target ``VectorBase``; the catalog
schema is owned by the upstream product service.
"""

from sqlalchemy.orm import declarative_base


CatalogBase = declarative_base()

VectorBase = declarative_base()
