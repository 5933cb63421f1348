"""sl_session REST endpoints.

POST   /sessions                          — create (SETUP)
GET    /sessions                          — caller's sessions, newest first
GET    /sessions/{session_id}             — live view (stack, profit, clock, history)
POST   /sessions/{session_id}/start       — set initial buy-in, start the clock
POST   /sessions/{session_id}/pause
POST   /sessions/{session_id}/resume
POST   /sessions/{session_id}/end         — enter ENDING (clock stops)
POST   /sessions/{session_id}/chip-updates — absolute stack snapshot
POST   /sessions/{session_id}/adjust      — quick +/- on the latest stack
POST   /sessions/{session_id}/rebuys
POST   /sessions/{session_id}/finalize    — record cashout, COMPLETED
PUT    /sessions/{session_id}/buy-in      — correct total buy-in
PUT    /sessions/{session_id}/cashout     — correct cashout (COMPLETED only)
DELETE /sessions/{session_id}             — delete, cancelling open stakes
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.database import get_db_session
from src.sl_common.response import ApiResponse, success_response
from src.sl_gateway.auth.dependencies import get_current_player_id
from src.sl_session.application.locks import session_locks
from src.sl_session.application.schemas import (
    AdjustStackRequest,
    ChipUpdateRequest,
    CreateSessionRequest,
    EditBuyInRequest,
    EditCashoutRequest,
    FinalizeRequest,
    RebuyRequest,
    StartSessionRequest,
)
from src.sl_session.application.service import SessionApplicationService
from src.sl_staking.application.service import StakingApplicationService

router = APIRouter(prefix="/sessions", tags=["sessions"])

_service = SessionApplicationService(
    staking=StakingApplicationService(locks=session_locks),
    locks=session_locks,
)


def get_session_service() -> SessionApplicationService:
    return _service


PlayerId = Annotated[str, Depends(get_current_player_id)]
Db = Annotated[AsyncSession, Depends(get_db_session)]
Service = Annotated[SessionApplicationService, Depends(get_session_service)]


@router.post("", status_code=201)
async def create_session(
    body: CreateSessionRequest, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.create_session(
        db,
        player_id,
        game_type=body.game_type,
        game_name=body.game_name,
        stakes_label=body.stakes_label,
        location=body.location,
        tournament_base_buy_in_cents=body.tournament_base_buy_in_cents,
    )
    return success_response(result.model_dump(), request)


@router.get("")
async def list_sessions(
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    result = await service.list_sessions(db, player_id, limit)
    return success_response(result.model_dump(), request)


@router.get("/{session_id}")
async def get_session(
    session_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.get_session(db, player_id, session_id)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/start")
async def start_session(
    session_id: str,
    body: StartSessionRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.start(db, player_id, session_id, body.buy_in_cents, body.game_name)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/pause")
async def pause_session(
    session_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.pause(db, player_id, session_id)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/resume")
async def resume_session(
    session_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.resume(db, player_id, session_id)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/end")
async def end_session(
    session_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    result = await service.begin_ending(db, player_id, session_id)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/chip-updates")
async def append_chip_update(
    session_id: str,
    body: ChipUpdateRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.append_chip_update(
        db, player_id, session_id, body.amount_cents, body.note, body.timestamp
    )
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/adjust")
async def adjust_stack(
    session_id: str,
    body: AdjustStackRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.adjust_stack(db, player_id, session_id, body.delta_cents, body.note)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/rebuys")
async def append_rebuy(
    session_id: str,
    body: RebuyRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.append_rebuy(db, player_id, session_id, body.amount_cents)
    return success_response(result.model_dump(), request)


@router.post("/{session_id}/finalize")
async def finalize_session(
    session_id: str,
    body: FinalizeRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.finalize(db, player_id, session_id, body.cashout_cents)
    return success_response(result.model_dump(), request)


@router.put("/{session_id}/buy-in")
async def edit_buy_in(
    session_id: str,
    body: EditBuyInRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.edit_buy_in(db, player_id, session_id, body.buy_in_cents)
    return success_response(result.model_dump(), request)


@router.put("/{session_id}/cashout")
async def edit_cashout(
    session_id: str,
    body: EditCashoutRequest,
    request: Request,
    player_id: PlayerId,
    db: Db,
    service: Service,
) -> ApiResponse:
    result = await service.edit_cashout(db, player_id, session_id, body.cashout_cents)
    return success_response(result.model_dump(), request)


@router.delete("/{session_id}")
async def delete_session(
    session_id: str, request: Request, player_id: PlayerId, db: Db, service: Service
) -> ApiResponse:
    await service.delete_session(db, player_id, session_id)
    return success_response({"id": session_id, "deleted": True}, request)
