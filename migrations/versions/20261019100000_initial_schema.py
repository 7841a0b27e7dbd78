"""initial_schema

Revision ID: 20261019100000
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '20261019100000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table - rows are created by the identity provider on first login
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) UNIQUE NOT NULL,
            name VARCHAR(255),
            image TEXT,
            image_blob BYTEA,
            role VARCHAR(20) NOT NULL DEFAULT 'user',
            last_login TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # Stores table - local mirror of the inventory API
    op.execute("""
        CREATE TABLE stores (
            id BIGSERIAL PRIMARY KEY,
            chain_code TEXT NOT NULL,
            code TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT '',
            address TEXT NOT NULL DEFAULT '',
            city TEXT NOT NULL DEFAULT '',
            zipcode TEXT NOT NULL DEFAULT '',
            lat DOUBLE PRECISION,
            lon DOUBLE PRECISION,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_stores_chain_code_code UNIQUE (chain_code, code),
            CONSTRAINT ck_stores_coordinates_pair CHECK ((lat IS NULL) = (lon IS NULL))
        )
    """)
    op.execute("CREATE INDEX idx_stores_missing_coordinates ON stores (chain_code) WHERE lat IS NULL")


def downgrade() -> None:
    op.drop_table('stores')
    op.drop_table('users')
