"""Current user's listings, purchases and sales."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.application.service import CatalogApplicationService
from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_user
from src.gm_gateway.user.db_models import UserModel

router = APIRouter(prefix="/me", tags=["me"])

_service = CatalogApplicationService()


@router.get("/items")
async def my_items(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    items = await _service.list_my_items(db, str(current_user.id))
    return respond(request, [i.model_dump() for i in items])


@router.get("/purchases")
async def my_purchases(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    listings = await _service.list_purchases(db, str(current_user.id))
    return respond(request, [x.model_dump() for x in listings])


@router.get("/sales")
async def my_sales(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    listings = await _service.list_sales(db, str(current_user.id))
    return respond(request, [x.model_dump() for x in listings])
