"""SessionRepository — concrete implementation of SessionRepositoryProtocol.

All queries use raw text() SQL (no ORM). Chip updates are append-only: they
are inserted once and never updated; deleting a session cascades to them.
"""

from collections import defaultdict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.enums import ChipUpdateKind, GameType, SessionStatus
from src.sl_session.domain.models import ChipStackUpdate, Session

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

SESSION_COLUMNS = (
    "id", "player_id", "game_type", "game_name", "stakes_label", "location",
    "tournament_base_buy_in_cents", "status", "buy_in_cents", "cashout_cents",
    "elapsed_seconds", "last_active_at", "last_paused_at", "started_at",
    "ended_at", "created_at", "updated_at",
)

CHIP_UPDATE_COLUMNS = (
    "id", "session_id", "amount_cents", "kind", "rebuy_amount_cents", "note", "timestamp",
)

_SELECT_SESSION = f"SELECT {', '.join(SESSION_COLUMNS)} FROM sessions"

_GET_SESSION_SQL = text(_SELECT_SESSION + " WHERE id = :session_id")

_GET_SESSION_FOR_UPDATE_SQL = text(_SELECT_SESSION + " WHERE id = :session_id FOR UPDATE")

_LIST_SESSIONS_SQL = text(
    _SELECT_SESSION
    + " WHERE player_id = :player_id ORDER BY created_at DESC, id DESC LIMIT :limit"
)

_INSERT_SESSION_SQL = text(f"""
    INSERT INTO sessions ({', '.join(SESSION_COLUMNS)})
    VALUES ({', '.join(':' + c for c in SESSION_COLUMNS)})
""")

_UPDATE_SESSION_SQL = text("""
    UPDATE sessions
    SET game_name = :game_name, stakes_label = :stakes_label, location = :location,
        status = :status, buy_in_cents = :buy_in_cents, cashout_cents = :cashout_cents,
        elapsed_seconds = :elapsed_seconds,
        last_active_at = :last_active_at, last_paused_at = :last_paused_at,
        started_at = :started_at, ended_at = :ended_at
    WHERE id = :id
""")

_DELETE_SESSION_SQL = text("DELETE FROM sessions WHERE id = :session_id")

# Replay order: by timestamp, ties broken by (time-ordered) id
_LIST_CHIP_UPDATES_SQL = text(f"""
    SELECT {', '.join(CHIP_UPDATE_COLUMNS)}
    FROM chip_stack_updates
    WHERE session_id = ANY(:session_ids)
    ORDER BY "timestamp" ASC, id ASC
""")

_INSERT_CHIP_UPDATE_SQL = text("""
    INSERT INTO chip_stack_updates
        (id, session_id, amount_cents, kind, rebuy_amount_cents, note, "timestamp")
    VALUES (:id, :session_id, :amount_cents, :kind, :rebuy_amount_cents, :note, :timestamp)
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_session(row: object) -> Session:
    return Session(
        id=row.id,  # type: ignore[attr-defined]
        player_id=row.player_id,  # type: ignore[attr-defined]
        game_type=GameType(row.game_type),  # type: ignore[attr-defined]
        game_name=row.game_name,  # type: ignore[attr-defined]
        stakes_label=row.stakes_label,  # type: ignore[attr-defined]
        location=row.location,  # type: ignore[attr-defined]
        tournament_base_buy_in_cents=row.tournament_base_buy_in_cents,  # type: ignore[attr-defined]
        status=SessionStatus(row.status),  # type: ignore[attr-defined]
        buy_in_cents=row.buy_in_cents,  # type: ignore[attr-defined]
        cashout_cents=row.cashout_cents,  # type: ignore[attr-defined]
        elapsed_seconds=float(row.elapsed_seconds),  # type: ignore[attr-defined]
        last_active_at=row.last_active_at,  # type: ignore[attr-defined]
        last_paused_at=row.last_paused_at,  # type: ignore[attr-defined]
        started_at=row.started_at,  # type: ignore[attr-defined]
        ended_at=row.ended_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_chip_update(row: object) -> ChipStackUpdate:
    return ChipStackUpdate(
        id=row.id,  # type: ignore[attr-defined]
        session_id=row.session_id,  # type: ignore[attr-defined]
        amount_cents=row.amount_cents,  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
        note=row.note,  # type: ignore[attr-defined]
        kind=ChipUpdateKind(row.kind),  # type: ignore[attr-defined]
        rebuy_amount_cents=row.rebuy_amount_cents,  # type: ignore[attr-defined]
    )


def _session_params(session: Session) -> dict:
    return {
        "id": session.id,
        "player_id": session.player_id,
        "game_type": session.game_type.value,
        "game_name": session.game_name,
        "stakes_label": session.stakes_label,
        "location": session.location,
        "tournament_base_buy_in_cents": session.tournament_base_buy_in_cents,
        "status": session.status.value,
        "buy_in_cents": session.buy_in_cents,
        "cashout_cents": session.cashout_cents,
        "elapsed_seconds": session.elapsed_seconds,
        "last_active_at": session.last_active_at,
        "last_paused_at": session.last_paused_at,
        "started_at": session.started_at,
        "ended_at": session.ended_at,
        "created_at": session.created_at,
        "updated_at": session.updated_at,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionRepository:
    """Concrete repository. Never commits; the application service owns the transaction."""

    async def get_session(
        self, db: AsyncSession, session_id: str, for_update: bool = False
    ) -> Session | None:
        sql = _GET_SESSION_FOR_UPDATE_SQL if for_update else _GET_SESSION_SQL
        result = await db.execute(sql, {"session_id": session_id})
        row = result.fetchone()
        if row is None:
            return None
        session = _row_to_session(row)
        await self._attach_chip_updates(db, [session])
        return session

    async def create_session(self, db: AsyncSession, session: Session) -> None:
        await db.execute(_INSERT_SESSION_SQL, _session_params(session))

    async def save_session(self, db: AsyncSession, session: Session) -> None:
        # updated_at is maintained by the fn_touch_updated_at trigger
        await db.execute(_UPDATE_SESSION_SQL, _session_params(session))

    async def append_chip_updates(
        self, db: AsyncSession, updates: list[ChipStackUpdate]
    ) -> None:
        if not updates:
            return
        await db.execute(
            _INSERT_CHIP_UPDATE_SQL,
            [
                {
                    "id": u.id,
                    "session_id": u.session_id,
                    "amount_cents": u.amount_cents,
                    "kind": u.kind.value,
                    "rebuy_amount_cents": u.rebuy_amount_cents,
                    "note": u.note,
                    "timestamp": u.timestamp,
                }
                for u in updates
            ],
        )

    async def delete_session(self, db: AsyncSession, session_id: str) -> None:
        await db.execute(_DELETE_SESSION_SQL, {"session_id": session_id})

    async def list_sessions_for_player(
        self, db: AsyncSession, player_id: str, limit: int
    ) -> list[Session]:
        result = await db.execute(_LIST_SESSIONS_SQL, {"player_id": player_id, "limit": limit})
        sessions = [_row_to_session(row) for row in result.fetchall()]
        await self._attach_chip_updates(db, sessions)
        return sessions

    async def _attach_chip_updates(self, db: AsyncSession, sessions: list[Session]) -> None:
        if not sessions:
            return
        result = await db.execute(
            _LIST_CHIP_UPDATES_SQL, {"session_ids": [s.id for s in sessions]}
        )
        by_session: dict[str, list[ChipStackUpdate]] = defaultdict(list)
        for row in result.fetchall():
            update = _row_to_chip_update(row)
            by_session[update.session_id].append(update)
        for session in sessions:
            session.chip_updates = by_session.get(session.id, [])
