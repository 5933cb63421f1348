"""002: create sessions table

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE sessions (
            id                              VARCHAR(64)     PRIMARY KEY,
            player_id                       VARCHAR(64)     NOT NULL,
            game_type                       VARCHAR(20)     NOT NULL DEFAULT 'CASH',
            game_name                       VARCHAR(200)    NOT NULL DEFAULT '',
            stakes_label                    VARCHAR(50)     NOT NULL DEFAULT '',
            location                        VARCHAR(200),
            tournament_base_buy_in_cents    BIGINT,
            status                          VARCHAR(20)     NOT NULL DEFAULT 'SETUP',
            buy_in_cents                    BIGINT          NOT NULL DEFAULT 0,
            cashout_cents                   BIGINT,
            elapsed_seconds                 DOUBLE PRECISION NOT NULL DEFAULT 0,
            last_active_at                  TIMESTAMPTZ,
            last_paused_at                  TIMESTAMPTZ,
            started_at                      TIMESTAMPTZ,
            ended_at                        TIMESTAMPTZ,
            created_at                      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_sessions_game_type CHECK (game_type IN ('CASH', 'TOURNAMENT')),
            CONSTRAINT ck_sessions_status CHECK (
                status IN ('SETUP', 'ACTIVE', 'PAUSED', 'ENDING', 'COMPLETED')
            ),
            CONSTRAINT ck_sessions_buy_in_gte_0      CHECK (buy_in_cents >= 0),
            CONSTRAINT ck_sessions_cashout_gte_0     CHECK (cashout_cents IS NULL OR cashout_cents >= 0),
            CONSTRAINT ck_sessions_elapsed_gte_0     CHECK (elapsed_seconds >= 0),
            CONSTRAINT ck_sessions_cashout_iff_completed CHECK (
                (status = 'COMPLETED') = (cashout_cents IS NOT NULL)
            ),
            CONSTRAINT ck_sessions_started CHECK (
                status = 'SETUP' OR started_at IS NOT NULL
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_sessions_player_created ON sessions (player_id, created_at DESC);"
    )
    op.execute("""
        CREATE TRIGGER trg_sessions_updated_at
            BEFORE UPDATE ON sessions
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE sessions IS 'Poker sessions: lifecycle, active clock, buy-in and cashout';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS sessions CASCADE;")
