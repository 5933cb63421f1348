"""SQLAlchemy ORM models for the manual_stakers and stakes tables.

Used for type reference and schema-drift tests only; persistence.py uses raw
text() SQL. Alembic migrations (004/005) are the authoritative DDL source.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.sl_common.database import Base


class ManualStakerORM(Base):
    __tablename__ = "manual_stakers"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_by_user_id: Mapped[str] = mapped_column(Text, nullable=False)
    contact_info: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(nullable=False)


class StakeORM(Base):
    __tablename__ = "stakes"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    # No FK to sessions: settled and cancelled stakes outlive a deleted session
    session_id: Mapped[str] = mapped_column(Text, nullable=False)
    staker_user_id: Mapped[str | None] = mapped_column(Text)
    manual_staker_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("manual_stakers.id")
    )
    staker_display_name: Mapped[str | None] = mapped_column(Text)
    staked_player_id: Mapped[str] = mapped_column(Text, nullable=False)
    stake_percentage_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    markup_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    session_buy_in_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    session_cashout_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # cents × SETTLEMENT_SCALE, exact
    settlement_amount_scaled: Mapped[Decimal] = mapped_column(Numeric(38, 0), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    is_tournament_session: Mapped[bool] = mapped_column(Boolean, nullable=False)
    session_game_name: Mapped[str] = mapped_column(Text, nullable=False)
    session_stakes_label: Mapped[str] = mapped_column(Text, nullable=False)
    session_date: Mapped[datetime | None] = mapped_column()
    settlement_initiator_id: Mapped[str | None] = mapped_column(Text)
    settlement_confirmer_id: Mapped[str | None] = mapped_column(Text)
    proposed_at: Mapped[datetime] = mapped_column(nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column()
    declined_at: Mapped[datetime | None] = mapped_column()
    settled_at: Mapped[datetime | None] = mapped_column()
    last_updated_at: Mapped[datetime] = mapped_column(nullable=False)
