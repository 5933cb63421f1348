"""SQLAlchemy ORM models for the sessions and chip_stack_updates tables.

Used for type reference and schema-drift tests only; persistence.py uses raw
text() SQL. Alembic migrations (002/003) are the authoritative DDL source.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Double, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.sl_common.database import Base


class SessionORM(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    player_id: Mapped[str] = mapped_column(Text, nullable=False)
    game_type: Mapped[str] = mapped_column(Text, nullable=False)
    game_name: Mapped[str] = mapped_column(Text, nullable=False)
    stakes_label: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(Text)
    tournament_base_buy_in_cents: Mapped[int | None] = mapped_column(BigInteger)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    buy_in_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cashout_cents: Mapped[int | None] = mapped_column(BigInteger)
    elapsed_seconds: Mapped[float] = mapped_column(Double, nullable=False)
    last_active_at: Mapped[datetime | None] = mapped_column()
    last_paused_at: Mapped[datetime | None] = mapped_column()
    started_at: Mapped[datetime | None] = mapped_column()
    ended_at: Mapped[datetime | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)


class ChipStackUpdateORM(Base):
    __tablename__ = "chip_stack_updates"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    session_id: Mapped[str] = mapped_column(
        Text, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    rebuy_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    note: Mapped[str | None] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)
