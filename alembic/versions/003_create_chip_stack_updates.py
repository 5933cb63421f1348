"""003: create chip_stack_updates table

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE chip_stack_updates (
            id                  VARCHAR(64)     PRIMARY KEY,
            session_id          VARCHAR(64)     NOT NULL REFERENCES sessions (id) ON DELETE CASCADE,
            amount_cents        BIGINT          NOT NULL,
            kind                VARCHAR(10)     NOT NULL DEFAULT 'UPDATE',
            rebuy_amount_cents  BIGINT          NOT NULL DEFAULT 0,
            note                VARCHAR(500),
            "timestamp"         TIMESTAMPTZ     NOT NULL,
            CONSTRAINT ck_chip_updates_amount_gte_0 CHECK (amount_cents >= 0),
            CONSTRAINT ck_chip_updates_kind CHECK (kind IN ('UPDATE', 'REBUY')),
            CONSTRAINT ck_chip_updates_rebuy CHECK (
                (kind = 'REBUY' AND rebuy_amount_cents > 0)
                OR (kind = 'UPDATE' AND rebuy_amount_cents = 0)
            )
        );
    """)
    op.execute(
        'CREATE INDEX idx_chip_updates_session_ts ON chip_stack_updates (session_id, "timestamp", id);'
    )
    op.execute("COMMENT ON TABLE chip_stack_updates IS 'Append-only absolute stack snapshots per session';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS chip_stack_updates CASCADE;")
