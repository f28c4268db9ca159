"""ws_rank REST API — rank profile of the caller or any user."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.ws_common.database import get_db_session
from src.ws_common.id_generator import validate_user_id
from src.ws_common.response import ApiResponse, envelope
from src.ws_gateway.auth.dependencies import CurrentUser, get_current_user
from src.ws_rank.application.engine import RankEngine

router = APIRouter(prefix="/ranks", tags=["ranks"])

_engine = RankEngine()


class RankProfileResponse(BaseModel):
    user_id: str
    points: int
    tier: str
    position: int


async def _profile(db: AsyncSession, user_id: str, request: Request) -> ApiResponse:
    profile = await _engine.get_profile(db, user_id)
    return envelope(
        request,
        RankProfileResponse(
            user_id=profile.user_id,
            points=profile.points,
            tier=profile.tier,
            position=profile.position,
        ).model_dump(),
    )


@router.get("/me")
async def get_my_rank(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    return await _profile(db, current_user.user_id, request)


@router.get("/{user_id}")
async def get_user_rank(
    user_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    return await _profile(db, validate_user_id(user_id), request)
