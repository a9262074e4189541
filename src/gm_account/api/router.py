"""gm_account REST API — simulated wallet endpoints, all require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_account.application.schemas import TopupRequest, WithdrawRequest
from src.gm_account.application.service import AccountApplicationService
from src.gm_account.domain.banks import COUNTRIES, banks_for
from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_user
from src.gm_gateway.user.db_models import UserModel

router = APIRouter(prefix="/account", tags=["account"])

_service = AccountApplicationService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    return respond(request, data.model_dump())


@router.get("/countries")
async def list_countries(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    request: Request,
) -> ApiResponse:
    return respond(request, COUNTRIES)


@router.get("/banks")
async def list_banks(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    request: Request,
    country: str = Query(..., min_length=2, max_length=2),
) -> ApiResponse:
    return respond(request, banks_for(country))


@router.post("/topup")
async def topup(
    body: TopupRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.topup(db, str(current_user.id), body.amount, body.bank)
    return respond(request, data.model_dump(), message="Topup request created")


@router.post("/withdraw")
async def withdraw(
    body: WithdrawRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.withdraw(
        db, str(current_user.id), body.amount, body.bank, body.country, body.card_number
    )
    return respond(request, data.model_dump(), message="Withdraw request created")


@router.get("/operations")
async def list_operations(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    op_type: str | None = Query(None, description="Filter by OperationType"),
) -> ApiResponse:
    data = await _service.list_operations(
        db, str(current_user.id), cursor, limit, op_type
    )
    return respond(request, data.model_dump())
