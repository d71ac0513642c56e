"""Create product_embeddings table in the vector store

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Runs against VECTOR_DATABASE_URL, not the catalog database. product_id
references catalog products that live in another database, so there is no
foreign key.
"""
from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

EMBEDDING_DIM = 384


def upgrade():
    # Enable pgvector extension (idempotent)
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    op.create_table(
        'product_embeddings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('title_embedding', Vector(EMBEDDING_DIM), nullable=False),
        sa.Column('description_embedding', Vector(EMBEDDING_DIM), nullable=False),
        sa.Column('combined_embedding', Vector(EMBEDDING_DIM), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # Upsert target: one embedding row per product
    op.create_index(
        'idx_product_embeddings_product_id',
        'product_embeddings',
        ['product_id'],
        unique=True
    )

    # HNSW index for cosine k-NN on the vector queried by search
    op.execute("""
        CREATE INDEX idx_product_embeddings_combined_hnsw
        ON product_embeddings
        USING hnsw (combined_embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 200)
    """)


def downgrade():
    op.execute('DROP INDEX IF EXISTS idx_product_embeddings_combined_hnsw')
    op.drop_index('idx_product_embeddings_product_id', table_name='product_embeddings')
    op.drop_table('product_embeddings')

    # The vector extension is left installed; other tables may use it
