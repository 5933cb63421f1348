"""004: create manual_stakers table

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE manual_stakers (
            id                  VARCHAR(64)     PRIMARY KEY,
            name                VARCHAR(100)    NOT NULL,
            created_by_user_id  VARCHAR(64)     NOT NULL,
            contact_info        VARCHAR(200),
            notes               TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_manual_stakers_name_not_blank CHECK (length(trim(name)) > 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_manual_stakers_owner ON manual_stakers (created_by_user_id, name);"
    )
    op.execute("COMMENT ON TABLE manual_stakers IS 'Off-app stakers tracked by a player';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS manual_stakers CASCADE;")
