"""Admin REST API — settlement, void, conservation audit and rank corrections."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_admin.application.service import AdminService
from src.ws_common.database import get_db_session
from src.ws_common.id_generator import validate_entity_id, validate_user_id
from src.ws_common.response import ApiResponse, envelope
from src.ws_gateway.auth.dependencies import CurrentUser, require_admin
from src.ws_settlement.application.coordinator import MatchSettlementCoordinator
from src.ws_settlement.application.schemas import SettleRequest, VoidRequest

router = APIRouter(prefix="/admin", tags=["admin"])

_coordinator = MatchSettlementCoordinator()
_service = AdminService()


class RankAdjustRequest(BaseModel):
    delta: int = Field(..., ge=-100000, le=100000)
    reason: str = Field(..., min_length=1, max_length=500)


@router.post("/matches/{match_id}/settle")
async def settle_match(
    match_id: str,
    body: SettleRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    request: Request,
) -> ApiResponse:
    result = await _coordinator.validate_match(
        validate_entity_id(match_id, "match"),
        body.winner_id,
        body.winner_type,
        admin.user_id,
        body.notes,
    )
    return envelope(request, result.model_dump())


@router.post("/matches/{match_id}/void")
async def void_match(
    match_id: str,
    body: VoidRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    request: Request,
) -> ApiResponse:
    result = await _coordinator.void_match(
        validate_entity_id(match_id, "match"), body.reason, admin.user_id
    )
    return envelope(request, result.model_dump())


@router.get("/matches/{match_id}/conservation")
async def verify_conservation(
    match_id: str,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    report = await _coordinator.verify_match_conservation(
        db, validate_entity_id(match_id, "match")
    )
    return envelope(request, report.model_dump())


@router.post("/users/{user_id}/rank")
async def adjust_rank(
    user_id: str,
    body: RankAdjustRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    request: Request,
) -> ApiResponse:
    update = await _service.adjust_rank(
        validate_user_id(user_id), body.delta, admin.user_id, body.reason
    )
    data = {
        "user_id": update.user_id,
        "old_points": update.old_points,
        "new_points": update.new_points,
        "applied_delta": update.delta,
        "old_tier": update.old_tier,
        "new_tier": update.new_tier,
        "tier_changed": update.tier_changed,
    }
    return envelope(request, data)
