"""Bet REST API — place, list, read and act on the caller's bets."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_common.database import get_db_session
from src.ws_common.id_generator import validate_entity_id
from src.ws_common.response import ApiResponse, envelope
from src.ws_gateway.auth.dependencies import CurrentUser, get_current_user
from src.ws_lifecycle.application.schemas import BetActionRequest, PlaceBetRequest
from src.ws_lifecycle.application.service import BetLifecycleManager

router = APIRouter(prefix="/bets", tags=["bets"])

_manager = BetLifecycleManager()


@router.post("", status_code=201)
async def place_bet(
    body: PlaceBetRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    request: Request,
) -> ApiResponse:
    data = await _manager.place_bet(
        current_user.user_id, body.match_id, body.amount_cents, body.odd
    )
    return envelope(request, data.model_dump())


@router.get("")
async def list_bets(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="Filter by bet status"),
    match_id: str | None = Query(None, pattern=r"^[0-9]{1,19}$"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _manager.list_bets(
        db, current_user.user_id, status, match_id, cursor, limit
    )
    return envelope(request, data.model_dump())


@router.get("/{bet_id}")
async def get_bet(
    bet_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _manager.get_bet(
        db, validate_entity_id(bet_id, "bet"), current_user.user_id, current_user.is_admin
    )
    return envelope(request, data.model_dump())


@router.post("/{bet_id}/action")
async def bet_action(
    bet_id: str,
    body: BetActionRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    request: Request,
) -> ApiResponse:
    data = await _manager.bet_action(
        validate_entity_id(bet_id, "bet"), current_user.user_id, body.action
    )
    return envelope(request, data.model_dump())
