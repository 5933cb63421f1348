"""sl_staking REST endpoints.

GET    /sessions/{session_id}/stakes         — stakes on a session (owner, or own stakes)
POST   /sessions/{session_id}/stakes         — add a stake (session owner)
GET    /stakes                               — caller's stakes, as player or staker
GET    /stakes/{stake_id}
PUT    /stakes/{stake_id}                    — change terms (staked player)
POST   /stakes/{stake_id}/accept             — app-user staker
POST   /stakes/{stake_id}/decline            — app-user staker
POST   /stakes/{stake_id}/settle             — either party, marks paid
POST   /stakes/{stake_id}/initiate-settlement
POST   /stakes/{stake_id}/confirm-settlement — the other party
POST   /stakes/{stake_id}/withdraw-settlement — the initiator
POST   /stakes/{stake_id}/reopen             — settled → awaiting settlement
POST   /manual-stakers
GET    /manual-stakers
GET    /manual-stakers/{profile_id}
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.database import get_db_session
from src.sl_common.response import ApiResponse, success_response
from src.sl_gateway.auth.dependencies import get_current_player_id
from src.sl_session.application.locks import session_locks
from src.sl_staking.application.schemas import (
    AddStakeRequest,
    CreateManualStakerRequest,
    UpdateStakeRequest,
)
from src.sl_staking.application.service import StakingApplicationService

session_stakes_router = APIRouter(prefix="/sessions/{session_id}/stakes", tags=["stakes"])
router = APIRouter(prefix="/stakes", tags=["stakes"])
manual_stakers_router = APIRouter(prefix="/manual-stakers", tags=["manual-stakers"])

_service = StakingApplicationService(locks=session_locks)


def get_staking_service() -> StakingApplicationService:
    return _service


PlayerId = Annotated[str, Depends(get_current_player_id)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Service = Annotated[StakingApplicationService, Depends(get_staking_service)]


# ---------------------------------------------------------------------------
# Stakes on a session
# ---------------------------------------------------------------------------


@session_stakes_router.get("")
async def list_session_stakes(
    session_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.list_stakes_for_session(db, player_id, session_id)
    return success_response(result.model_dump(), request)


@session_stakes_router.post("", status_code=201)
async def add_stake(
    session_id: str,
    body: AddStakeRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.add_stake(
        db,
        player_id,
        session_id,
        body.stake_percentage_bps,
        body.markup_bps,
        staker_user_id=body.staker_user_id,
        manual_staker_id=body.manual_staker_id,
    )
    return success_response(result.model_dump(), request)


# ---------------------------------------------------------------------------
# Stakes
# ---------------------------------------------------------------------------


@router.get("")
async def list_my_stakes(
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await service.list_stakes_for_user(db, player_id, limit)
    return success_response(result.model_dump(), request)


@router.get("/{stake_id}")
async def get_stake(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_stake(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.put("/{stake_id}")
async def update_stake(
    stake_id: str,
    body: UpdateStakeRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.update_stake(
        db, player_id, stake_id, body.stake_percentage_bps, body.markup_bps
    )
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/accept")
async def accept_stake(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.accept_stake(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/decline")
async def decline_stake(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.decline_stake(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/settle")
async def mark_settled(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.mark_settled(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/initiate-settlement")
async def initiate_settlement(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.initiate_settlement(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/confirm-settlement")
async def confirm_settlement(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.confirm_settlement(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/withdraw-settlement")
async def withdraw_settlement(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.withdraw_settlement(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


@router.post("/{stake_id}/reopen")
async def reopen_stake(
    stake_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.reopen_stake(db, player_id, stake_id)
    return success_response(result.model_dump(), request)


# ---------------------------------------------------------------------------
# Manual staker profiles
# ---------------------------------------------------------------------------


@manual_stakers_router.post("", status_code=201)
async def create_manual_staker(
    body: CreateManualStakerRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.create_manual_staker(
        db, player_id, body.name, body.contact_info, body.notes
    )
    return success_response(result.model_dump(), request)


@manual_stakers_router.get("")
async def list_manual_stakers(
    request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.list_manual_stakers(db, player_id)
    return success_response(result.model_dump(), request)


@manual_stakers_router.get("/{profile_id}")
async def get_manual_staker(
    profile_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_manual_staker(db, player_id, profile_id)
    return success_response(result.model_dump(), request)
