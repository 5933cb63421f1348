"""StakingApplicationService — stake contracts attached to sessions.

Every write runs under the parent session's lock and in one transaction:
either the stake change (and the recomputation it implies) is committed, or
nothing is. Validation happens before the first write, so a rejected request
never leaves a partial change behind.

Display names are best-effort: a slow or failing lookup falls back to a
placeholder and never fails the request.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sl_common.datetime_utils import utc_now
from src.sl_common.enums import StakeStatus
from src.sl_common.errors import (
    AmbiguousStakerError,
    DuplicateStakeError,
    InvalidTransitionError,
    ManualStakerNotFoundError,
    MissingStakerError,
    NotSessionOwnerError,
    NotStakeParticipantError,
    SessionNotFoundError,
    StakeAlreadySettledError,
    StakeNotFoundError,
)
from src.sl_common.id_generator import generate_id
from src.sl_session.application.locks import SessionLocks
from src.sl_session.domain.accumulator import LiveSessionAccumulator
from src.sl_session.domain.models import Session
from src.sl_session.domain.repository import SessionRepositoryProtocol
from src.sl_session.infrastructure.persistence import SessionRepository
from src.sl_staking.application.schemas import (
    ManualStakerListResponse,
    ManualStakerResponse,
    StakeListResponse,
    StakeResponse,
)
from src.sl_staking.domain import status_machine
from src.sl_staking.domain.models import (
    AppUserStaker,
    ManualStaker,
    ManualStakerProfile,
    StakeContract,
    StakerRef,
)
from src.sl_staking.domain.repository import (
    ManualStakerRepositoryProtocol,
    StakeRepositoryProtocol,
    StakerDirectoryProtocol,
)
from src.sl_staking.domain.settlement import (
    recompute,
    recompute_open_stakes,
    settlement_amount_scaled,
    validate_stake_terms,
)
from src.sl_staking.infrastructure.directory import StakerDirectory
from src.sl_staking.infrastructure.persistence import (
    ManualStakerRepository,
    StakeRepository,
)

logger = logging.getLogger(__name__)

APP_USER_NAME_PLACEHOLDER = "Loading..."
MANUAL_STAKER_NAME_PLACEHOLDER = "Manual Staker"


class StakingApplicationService:
    def __init__(
        self,
        repo: StakeRepositoryProtocol | None = None,
        session_repo: SessionRepositoryProtocol | None = None,
        manual_repo: ManualStakerRepositoryProtocol | None = None,
        directory: StakerDirectoryProtocol | None = None,
        locks: SessionLocks | None = None,
        name_timeout_seconds: float | None = None,
    ) -> None:
        self._repo: StakeRepositoryProtocol = repo or StakeRepository()
        self._session_repo: SessionRepositoryProtocol = session_repo or SessionRepository()
        self._manual_repo: ManualStakerRepositoryProtocol = (
            manual_repo or ManualStakerRepository()
        )
        self._directory: StakerDirectoryProtocol = directory or StakerDirectory(
            manual_repo=self._manual_repo
        )
        self._locks = locks or SessionLocks()
        self._name_timeout = (
            name_timeout_seconds
            if name_timeout_seconds is not None
            else settings.STAKER_NAME_TIMEOUT_SECONDS
        )

    # ------------------------------------------------------------------
    # Contract creation and terms
    # ------------------------------------------------------------------

    async def add_stake(
        self,
        db: AsyncSession,
        actor_id: str,
        session_id: str,
        stake_percentage_bps: int,
        markup_bps: int,
        staker_user_id: str | None = None,
        manual_staker_id: str | None = None,
        now: datetime | None = None,
    ) -> StakeResponse:
        validate_stake_terms(stake_percentage_bps, markup_bps)
        ts = now or utc_now()

        async with self._locks.for_session(session_id):
            try:
                staker = await self._build_staker_ref(
                    db, actor_id, staker_user_id, manual_staker_id
                )
                session = await self._load_owned_session(db, actor_id, session_id)
                existing = await self._repo.list_stakes_for_session(
                    db, session_id, for_update=True
                )
                for other in existing:
                    if other.is_open and _same_staker(other.staker, staker):
                        raise DuplicateStakeError(session_id, staker.staker_id)

                buy_in, cashout = LiveSessionAccumulator(session).settlement_basis()
                stake = StakeContract(
                    id=generate_id(),
                    session_id=session_id,
                    staker=staker,
                    staked_player_id=session.player_id,
                    stake_percentage_bps=stake_percentage_bps,
                    markup_bps=markup_bps,
                    session_buy_in_cents=buy_in,
                    session_cashout_cents=cashout,
                    settlement_amount_scaled=settlement_amount_scaled(
                        buy_in, cashout, stake_percentage_bps, markup_bps
                    ),
                    status=status_machine.initial_status(staker),
                    proposed_at=ts,
                    last_updated_at=ts,
                    is_tournament_session=session.is_tournament,
                    session_game_name=session.game_name,
                    session_stakes_label=session.stakes_label,
                    accepted_at=ts if staker.is_off_app else None,
                    session_date=session.started_at or session.created_at,
                )
                await self._repo.create_stake(db, stake)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(
            "Stake %s added to session %s: staker=%s off_app=%s pct=%d markup=%d amount=%d",
            stake.id, session_id, staker.staker_id, staker.is_off_app,
            stake_percentage_bps, markup_bps, stake.settlement_amount_cents,
        )
        return await self._to_response(db, stake)

    async def update_stake(
        self,
        db: AsyncSession,
        actor_id: str,
        stake_id: str,
        stake_percentage_bps: int,
        markup_bps: int,
        now: datetime | None = None,
    ) -> StakeResponse:
        validate_stake_terms(stake_percentage_bps, markup_bps)

        def change_terms(stake: StakeContract, session: Session, ts: datetime) -> None:
            if stake.staked_player_id != actor_id:
                raise NotStakeParticipantError(stake.id, "only the staked player can change terms")
            if stake.status == StakeStatus.SETTLED:
                raise StakeAlreadySettledError(stake.id)
            if not stake.is_open:
                raise InvalidTransitionError("stake", stake.status.value, "update")
            stake.stake_percentage_bps = stake_percentage_bps
            stake.markup_bps = markup_bps
            buy_in, cashout = LiveSessionAccumulator(session).settlement_basis()
            recompute(stake, buy_in, cashout, ts)
            stake.last_updated_at = ts

        return await self._mutate_stake(db, stake_id, change_terms, now)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def accept_stake(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def accept(stake: StakeContract, session: Session, ts: datetime) -> None:
            self._require_staker(stake, actor_id)
            status_machine.accept(stake, ts)

        return await self._mutate_stake(db, stake_id, accept, now)

    async def decline_stake(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def decline(stake: StakeContract, session: Session, ts: datetime) -> None:
            self._require_staker(stake, actor_id)
            status_machine.decline(stake, ts)

        return await self._mutate_stake(db, stake_id, decline, now)

    async def mark_settled(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def settle(stake: StakeContract, session: Session, ts: datetime) -> None:
            self._require_party(stake, actor_id)
            status_machine.mark_settled(stake, ts, settled_by=actor_id)
            logger.info(
                "Stake %s settled by %s for %d cents",
                stake.id, actor_id, stake.settlement_amount_cents,
            )

        return await self._mutate_stake(db, stake_id, settle, now)

    async def initiate_settlement(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def initiate(stake: StakeContract, session: Session, ts: datetime) -> None:
            self._require_party(stake, actor_id)
            if stake.is_off_app:
                # Nobody on the other side to confirm; mark_settled is the only path
                raise InvalidTransitionError(
                    "off-app stake", stake.status.value, "initiate settlement of"
                )
            status_machine.initiate_settlement(stake, actor_id, ts)

        return await self._mutate_stake(db, stake_id, initiate, now)

    async def confirm_settlement(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def confirm(stake: StakeContract, session: Session, ts: datetime) -> None:
            self._require_party(stake, actor_id)
            if stake.settlement_initiator_id == actor_id:
                raise NotStakeParticipantError(
                    stake.id, "settlement must be confirmed by the other party"
                )
            status_machine.confirm_settlement(stake, ts, confirmer_id=actor_id)
            logger.info(
                "Stake %s settlement confirmed by %s for %d cents",
                stake.id, actor_id, stake.settlement_amount_cents,
            )

        return await self._mutate_stake(db, stake_id, confirm, now)

    async def withdraw_settlement(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def withdraw(stake: StakeContract, session: Session, ts: datetime) -> None:
            if stake.settlement_initiator_id != actor_id:
                raise NotStakeParticipantError(
                    stake.id, "only the initiator can withdraw a settlement request"
                )
            status_machine.withdraw_settlement(stake, ts)

        return await self._mutate_stake(db, stake_id, withdraw, now)

    async def reopen_stake(
        self, db: AsyncSession, actor_id: str, stake_id: str, now: datetime | None = None
    ) -> StakeResponse:
        def reopen(stake: StakeContract, session: Session, ts: datetime) -> None:
            self._require_party(stake, actor_id)
            status_machine.reopen(stake, actor_id, ts)
            # Back in an open status: catch up with any session edits made while settled
            buy_in, cashout = LiveSessionAccumulator(session).settlement_basis()
            recompute(stake, buy_in, cashout, ts)

        return await self._mutate_stake(db, stake_id, reopen, now)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_stake(self, db: AsyncSession, actor_id: str, stake_id: str) -> StakeResponse:
        stake = await self._repo.get_stake(db, stake_id)
        if stake is None:
            raise StakeNotFoundError(stake_id)
        self._require_party(stake, actor_id)
        return await self._to_response(db, stake)

    async def list_stakes_for_session(
        self, db: AsyncSession, actor_id: str, session_id: str
    ) -> StakeListResponse:
        session = await self._session_repo.get_session(db, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        stakes = await self._repo.list_stakes_for_session(db, session_id)
        if session.player_id != actor_id:
            stakes = [s for s in stakes if s.is_party(actor_id)]
            if not stakes:
                raise NotSessionOwnerError(session_id)
        return StakeListResponse(items=[await self._to_response(db, s) for s in stakes])

    async def list_stakes_for_user(
        self, db: AsyncSession, actor_id: str, limit: int = 50
    ) -> StakeListResponse:
        stakes = await self._repo.list_stakes_for_user(db, actor_id, limit)
        return StakeListResponse(items=[await self._to_response(db, s) for s in stakes])

    # ------------------------------------------------------------------
    # Hooks used by the session service inside its own transaction
    # ------------------------------------------------------------------

    async def recompute_for_session(
        self, db: AsyncSession, session: Session, now: datetime
    ) -> list[StakeContract]:
        """Bring every open stake in line with the session's current facts. Does not commit."""
        stakes = await self._repo.list_stakes_for_session(db, session.id, for_update=True)
        if not stakes:
            return []
        buy_in, cashout = LiveSessionAccumulator(session).settlement_basis()
        changed = recompute_open_stakes(stakes, buy_in, cashout, now)
        for stake in changed:
            await self._repo.save_stake(db, stake)
        frozen = sum(1 for s in stakes if s.status == StakeStatus.SETTLED)
        if changed or frozen:
            logger.debug(
                "Session %s: %d stake(s) recomputed, %d settled stake(s) left frozen",
                session.id, len(changed), frozen,
            )
        return changed

    async def cancel_for_session(
        self, db: AsyncSession, session_id: str, now: datetime
    ) -> list[StakeContract]:
        """Cancel the open stakes of a session that is being deleted. Does not commit."""
        stakes = await self._repo.list_stakes_for_session(db, session_id, for_update=True)
        cancelled = []
        for stake in stakes:
            if status_machine.can(stake, "cancel"):
                status_machine.cancel(stake, now)
                await self._repo.save_stake(db, stake)
                cancelled.append(stake)
        return cancelled

    # ------------------------------------------------------------------
    # Manual staker profiles
    # ------------------------------------------------------------------

    async def create_manual_staker(
        self,
        db: AsyncSession,
        actor_id: str,
        name: str,
        contact_info: str | None = None,
        notes: str | None = None,
    ) -> ManualStakerResponse:
        profile = ManualStakerProfile(
            id=generate_id(),
            name=name.strip(),
            created_by_user_id=actor_id,
            contact_info=contact_info.strip() if contact_info else None,
            notes=notes,
            created_at=utc_now(),
        )
        try:
            await self._manual_repo.create(db, profile)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ManualStakerResponse.from_domain(profile)

    async def list_manual_stakers(
        self, db: AsyncSession, actor_id: str
    ) -> ManualStakerListResponse:
        profiles = await self._manual_repo.list_for_user(db, actor_id)
        return ManualStakerListResponse(
            items=[ManualStakerResponse.from_domain(p) for p in profiles]
        )

    async def get_manual_staker(
        self, db: AsyncSession, actor_id: str, profile_id: str
    ) -> ManualStakerResponse:
        profile = await self._manual_repo.get(db, profile_id)
        # Other players' contacts are invisible rather than forbidden
        if profile is None or profile.created_by_user_id != actor_id:
            raise ManualStakerNotFoundError(profile_id)
        return ManualStakerResponse.from_domain(profile)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _mutate_stake(
        self,
        db: AsyncSession,
        stake_id: str,
        change: Callable[[StakeContract, Session, datetime], None],
        now: datetime | None,
    ) -> StakeResponse:
        """Load stake + session under the session lock, apply `change`, persist, commit."""
        ts = now or utc_now()
        peek = await self._repo.get_stake(db, stake_id)
        if peek is None:
            raise StakeNotFoundError(stake_id)

        async with self._locks.for_session(peek.session_id):
            try:
                stake = await self._repo.get_stake(db, stake_id, for_update=True)
                if stake is None:
                    raise StakeNotFoundError(stake_id)
                session = await self._session_repo.get_session(
                    db, stake.session_id, for_update=True
                )
                if session is None:
                    raise SessionNotFoundError(stake.session_id)
                change(stake, session, ts)
                await self._repo.save_stake(db, stake)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return await self._to_response(db, stake)

    async def _load_owned_session(
        self, db: AsyncSession, actor_id: str, session_id: str
    ) -> Session:
        session = await self._session_repo.get_session(db, session_id, for_update=True)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.player_id != actor_id:
            raise NotSessionOwnerError(session_id)
        return session

    async def _build_staker_ref(
        self,
        db: AsyncSession,
        actor_id: str,
        staker_user_id: str | None,
        manual_staker_id: str | None,
    ) -> StakerRef:
        if staker_user_id and manual_staker_id:
            raise AmbiguousStakerError()
        if staker_user_id:
            return AppUserStaker(user_id=staker_user_id)
        if manual_staker_id:
            profile = await self._manual_repo.get(db, manual_staker_id)
            if profile is None or profile.created_by_user_id != actor_id:
                raise ManualStakerNotFoundError(manual_staker_id)
            return ManualStaker(profile_id=profile.id, display_name=profile.name)
        raise MissingStakerError()

    @staticmethod
    def _require_staker(stake: StakeContract, actor_id: str) -> None:
        if not (isinstance(stake.staker, AppUserStaker) and stake.staker.user_id == actor_id):
            raise NotStakeParticipantError(stake.id, "only the staker can respond to a proposal")

    @staticmethod
    def _require_party(stake: StakeContract, actor_id: str) -> None:
        if not stake.is_party(actor_id):
            raise NotStakeParticipantError(stake.id)

    async def _to_response(self, db: AsyncSession, stake: StakeContract) -> StakeResponse:
        return StakeResponse.from_domain(stake, await self._display_name(db, stake))

    async def _display_name(self, db: AsyncSession, stake: StakeContract) -> str:
        staker = stake.staker
        fallback = (
            staker.display_name or MANUAL_STAKER_NAME_PLACEHOLDER
            if isinstance(staker, ManualStaker)
            else APP_USER_NAME_PLACEHOLDER
        )
        try:
            name = await asyncio.wait_for(
                self._directory.resolve_display_name(db, staker.staker_id, staker.is_off_app),
                timeout=self._name_timeout,
            )
        except Exception as exc:
            logger.warning(
                "Display name lookup failed for staker %s: %r", staker.staker_id, exc
            )
            return fallback
        return name or fallback


def _same_staker(a: StakerRef, b: StakerRef) -> bool:
    """Same kind and id; the denormalized display name does not count."""
    return type(a) is type(b) and a.staker_id == b.staker_id
