"""StakeRepository and ManualStakerRepository — raw text() SQL implementations.

A stake row references its staker through exactly one of staker_user_id
(app user) or manual_staker_id (off-app profile); a CHECK constraint enforces
it and the row mapper rebuilds the matching StakerRef.

The exact settlement amount can outgrow BIGINT, so it is stored as
NUMERIC(38, 0) and converted to int as soon as it leaves the driver.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.enums import StakeStatus
from src.sl_staking.domain.models import (
    AppUserStaker,
    ManualStaker,
    ManualStakerProfile,
    StakeContract,
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

STAKE_COLUMNS = (
    "id", "session_id", "staker_user_id", "manual_staker_id", "staker_display_name",
    "staked_player_id", "stake_percentage_bps", "markup_bps",
    "session_buy_in_cents", "session_cashout_cents", "settlement_amount_scaled",
    "status", "is_tournament_session", "session_game_name", "session_stakes_label",
    "session_date", "settlement_initiator_id", "settlement_confirmer_id",
    "proposed_at", "accepted_at", "declined_at", "settled_at", "last_updated_at",
)

MANUAL_STAKER_COLUMNS = (
    "id", "name", "created_by_user_id", "contact_info", "notes", "created_at",
)

_SELECT_STAKE = f"SELECT {', '.join(STAKE_COLUMNS)} FROM stakes"

_GET_STAKE_SQL = text(_SELECT_STAKE + " WHERE id = :stake_id")

_GET_STAKE_FOR_UPDATE_SQL = text(_SELECT_STAKE + " WHERE id = :stake_id FOR UPDATE")

_LIST_FOR_SESSION_SQL = text(
    _SELECT_STAKE + " WHERE session_id = :session_id ORDER BY proposed_at ASC, id ASC"
)

_LIST_FOR_SESSION_FOR_UPDATE_SQL = text(
    _SELECT_STAKE
    + " WHERE session_id = :session_id ORDER BY proposed_at ASC, id ASC FOR UPDATE"
)

# A user sees stakes they play under and stakes they back
_LIST_FOR_USER_SQL = text(
    _SELECT_STAKE
    + """
    WHERE staked_player_id = :user_id OR staker_user_id = :user_id
    ORDER BY last_updated_at DESC, id DESC
    LIMIT :limit
    """
)

_INSERT_STAKE_SQL = text(f"""
    INSERT INTO stakes ({', '.join(STAKE_COLUMNS)})
    VALUES ({', '.join(':' + c for c in STAKE_COLUMNS)})
""")

_UPDATE_STAKE_SQL = text("""
    UPDATE stakes
    SET stake_percentage_bps = :stake_percentage_bps, markup_bps = :markup_bps,
        session_buy_in_cents = :session_buy_in_cents,
        session_cashout_cents = :session_cashout_cents,
        settlement_amount_scaled = :settlement_amount_scaled,
        status = :status, settlement_initiator_id = :settlement_initiator_id,
        settlement_confirmer_id = :settlement_confirmer_id,
        accepted_at = :accepted_at, declined_at = :declined_at, settled_at = :settled_at,
        last_updated_at = :last_updated_at
    WHERE id = :id
""")

_INSERT_MANUAL_STAKER_SQL = text(f"""
    INSERT INTO manual_stakers ({', '.join(MANUAL_STAKER_COLUMNS)})
    VALUES ({', '.join(':' + c for c in MANUAL_STAKER_COLUMNS)})
""")

_GET_MANUAL_STAKER_SQL = text(f"""
    SELECT {', '.join(MANUAL_STAKER_COLUMNS)}
    FROM manual_stakers
    WHERE id = :profile_id
""")

_LIST_MANUAL_STAKERS_SQL = text(f"""
    SELECT {', '.join(MANUAL_STAKER_COLUMNS)}
    FROM manual_stakers
    WHERE created_by_user_id = :user_id
    ORDER BY name ASC, id ASC
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_stake(row: object) -> StakeContract:
    if row.staker_user_id is not None:  # type: ignore[attr-defined]
        staker: AppUserStaker | ManualStaker = AppUserStaker(
            user_id=row.staker_user_id  # type: ignore[attr-defined]
        )
    else:
        staker = ManualStaker(
            profile_id=row.manual_staker_id,  # type: ignore[attr-defined]
            display_name=row.staker_display_name,  # type: ignore[attr-defined]
        )
    return StakeContract(
        id=row.id,  # type: ignore[attr-defined]
        session_id=row.session_id,  # type: ignore[attr-defined]
        staker=staker,
        staked_player_id=row.staked_player_id,  # type: ignore[attr-defined]
        stake_percentage_bps=row.stake_percentage_bps,  # type: ignore[attr-defined]
        markup_bps=row.markup_bps,  # type: ignore[attr-defined]
        session_buy_in_cents=row.session_buy_in_cents,  # type: ignore[attr-defined]
        session_cashout_cents=row.session_cashout_cents,  # type: ignore[attr-defined]
        settlement_amount_scaled=int(row.settlement_amount_scaled),  # type: ignore[attr-defined]
        status=StakeStatus(row.status),  # type: ignore[attr-defined]
        proposed_at=row.proposed_at,  # type: ignore[attr-defined]
        last_updated_at=row.last_updated_at,  # type: ignore[attr-defined]
        is_tournament_session=row.is_tournament_session,  # type: ignore[attr-defined]
        session_game_name=row.session_game_name,  # type: ignore[attr-defined]
        session_stakes_label=row.session_stakes_label,  # type: ignore[attr-defined]
        accepted_at=row.accepted_at,  # type: ignore[attr-defined]
        declined_at=row.declined_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
        settlement_initiator_id=row.settlement_initiator_id,  # type: ignore[attr-defined]
        settlement_confirmer_id=row.settlement_confirmer_id,  # type: ignore[attr-defined]
        session_date=row.session_date,  # type: ignore[attr-defined]
    )


def _stake_params(stake: StakeContract) -> dict:
    staker = stake.staker
    return {
        "id": stake.id,
        "session_id": stake.session_id,
        "staker_user_id": staker.user_id if isinstance(staker, AppUserStaker) else None,
        "manual_staker_id": staker.profile_id if isinstance(staker, ManualStaker) else None,
        "staker_display_name": staker.display_name if isinstance(staker, ManualStaker) else None,
        "staked_player_id": stake.staked_player_id,
        "stake_percentage_bps": stake.stake_percentage_bps,
        "markup_bps": stake.markup_bps,
        "session_buy_in_cents": stake.session_buy_in_cents,
        "session_cashout_cents": stake.session_cashout_cents,
        "settlement_amount_scaled": Decimal(stake.settlement_amount_scaled),
        "status": stake.status.value,
        "is_tournament_session": stake.is_tournament_session,
        "session_game_name": stake.session_game_name,
        "session_stakes_label": stake.session_stakes_label,
        "session_date": stake.session_date,
        "settlement_initiator_id": stake.settlement_initiator_id,
        "settlement_confirmer_id": stake.settlement_confirmer_id,
        "proposed_at": stake.proposed_at,
        "accepted_at": stake.accepted_at,
        "declined_at": stake.declined_at,
        "settled_at": stake.settled_at,
        "last_updated_at": stake.last_updated_at,
    }


def _row_to_profile(row: object) -> ManualStakerProfile:
    return ManualStakerProfile(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        created_by_user_id=row.created_by_user_id,  # type: ignore[attr-defined]
        contact_info=row.contact_info,  # type: ignore[attr-defined]
        notes=row.notes,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class StakeRepository:
    """Concrete repository. Never commits; the application service owns the transaction."""

    async def get_stake(
        self, db: AsyncSession, stake_id: str, for_update: bool = False
    ) -> StakeContract | None:
        sql = _GET_STAKE_FOR_UPDATE_SQL if for_update else _GET_STAKE_SQL
        result = await db.execute(sql, {"stake_id": stake_id})
        row = result.fetchone()
        return _row_to_stake(row) if row else None

    async def create_stake(self, db: AsyncSession, stake: StakeContract) -> None:
        await db.execute(_INSERT_STAKE_SQL, _stake_params(stake))

    async def save_stake(self, db: AsyncSession, stake: StakeContract) -> None:
        await db.execute(_UPDATE_STAKE_SQL, _stake_params(stake))

    async def list_stakes_for_session(
        self, db: AsyncSession, session_id: str, for_update: bool = False
    ) -> list[StakeContract]:
        sql = _LIST_FOR_SESSION_FOR_UPDATE_SQL if for_update else _LIST_FOR_SESSION_SQL
        result = await db.execute(sql, {"session_id": session_id})
        return [_row_to_stake(row) for row in result.fetchall()]

    async def list_stakes_for_user(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[StakeContract]:
        result = await db.execute(_LIST_FOR_USER_SQL, {"user_id": user_id, "limit": limit})
        return [_row_to_stake(row) for row in result.fetchall()]


class ManualStakerRepository:
    async def create(self, db: AsyncSession, profile: ManualStakerProfile) -> None:
        await db.execute(
            _INSERT_MANUAL_STAKER_SQL,
            {
                "id": profile.id,
                "name": profile.name,
                "created_by_user_id": profile.created_by_user_id,
                "contact_info": profile.contact_info,
                "notes": profile.notes,
                "created_at": profile.created_at,
            },
        )

    async def get(self, db: AsyncSession, profile_id: str) -> ManualStakerProfile | None:
        result = await db.execute(_GET_MANUAL_STAKER_SQL, {"profile_id": profile_id})
        row = result.fetchone()
        return _row_to_profile(row) if row else None

    async def list_for_user(
        self, db: AsyncSession, user_id: str
    ) -> list[ManualStakerProfile]:
        result = await db.execute(_LIST_MANUAL_STAKERS_SQL, {"user_id": user_id})
        return [_row_to_profile(row) for row in result.fetchall()]
