"""005: create stakes table

Revision ID: 005
Revises: 004
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # session_id has no FK: settled and cancelled stakes outlive a deleted session.
    # settlement_amount_scaled is cents × 10^8 and can exceed BIGINT.
    op.execute("""
        CREATE TABLE stakes (
            id                          VARCHAR(64)     PRIMARY KEY,
            session_id                  VARCHAR(64)     NOT NULL,
            staker_user_id              VARCHAR(64),
            manual_staker_id            VARCHAR(64)     REFERENCES manual_stakers (id),
            staker_display_name         VARCHAR(100),
            staked_player_id            VARCHAR(64)     NOT NULL,
            stake_percentage_bps        INT             NOT NULL,
            markup_bps                  INT             NOT NULL DEFAULT 10000,
            session_buy_in_cents        BIGINT          NOT NULL,
            session_cashout_cents       BIGINT          NOT NULL,
            settlement_amount_scaled    NUMERIC(38, 0)  NOT NULL,
            status                      VARCHAR(30)     NOT NULL,
            is_tournament_session       BOOLEAN         NOT NULL DEFAULT FALSE,
            session_game_name           VARCHAR(200)    NOT NULL DEFAULT '',
            session_stakes_label        VARCHAR(50)     NOT NULL DEFAULT '',
            session_date                TIMESTAMPTZ,
            settlement_initiator_id     VARCHAR(64),
            settlement_confirmer_id     VARCHAR(64),
            proposed_at                 TIMESTAMPTZ     NOT NULL,
            accepted_at                 TIMESTAMPTZ,
            declined_at                 TIMESTAMPTZ,
            settled_at                  TIMESTAMPTZ,
            last_updated_at             TIMESTAMPTZ     NOT NULL,
            CONSTRAINT ck_stakes_exactly_one_staker CHECK (
                (staker_user_id IS NULL) <> (manual_staker_id IS NULL)
            ),
            CONSTRAINT ck_stakes_percentage CHECK (
                stake_percentage_bps > 0 AND stake_percentage_bps <= 10000
            ),
            CONSTRAINT ck_stakes_markup CHECK (markup_bps >= 10000),
            CONSTRAINT ck_stakes_status CHECK (
                status IN ('PROPOSED', 'AWAITING_SETTLEMENT', 'AWAITING_CONFIRMATION',
                           'SETTLED', 'DECLINED', 'CANCELLED')
            ),
            CONSTRAINT ck_stakes_settled_at CHECK (
                (status = 'SETTLED') = (settled_at IS NOT NULL)
            ),
            CONSTRAINT ck_stakes_initiator CHECK (
                status <> 'AWAITING_CONFIRMATION' OR settlement_initiator_id IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_stakes_session ON stakes (session_id, proposed_at);")
    op.execute("CREATE INDEX idx_stakes_player ON stakes (staked_player_id, last_updated_at DESC);")
    op.execute(
        "CREATE INDEX idx_stakes_staker_user ON stakes (staker_user_id, last_updated_at DESC) "
        "WHERE staker_user_id IS NOT NULL;"
    )
    # One open stake per (session, staker)
    op.execute("""
        CREATE UNIQUE INDEX uq_stakes_open_app_staker
            ON stakes (session_id, staker_user_id)
            WHERE staker_user_id IS NOT NULL
              AND status IN ('PROPOSED', 'AWAITING_SETTLEMENT', 'AWAITING_CONFIRMATION');
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_stakes_open_manual_staker
            ON stakes (session_id, manual_staker_id)
            WHERE manual_staker_id IS NOT NULL
              AND status IN ('PROPOSED', 'AWAITING_SETTLEMENT', 'AWAITING_CONFIRMATION');
    """)
    op.execute("COMMENT ON TABLE stakes IS 'Staking contracts and their settlement amounts';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS stakes CASCADE;")
