"""gm_deal REST endpoints.

POST /items/{item_id}/buy             — open a deal, freeze the price
POST /deals/{deal_id}/seller-confirm  — seller marks the goods as handed over
POST /deals/{deal_id}/buyer-complete  — buyer releases the funds
POST /deals/{deal_id}/dispute         — either side opens a dispute
GET  /deals                           — caller's deals with their role
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_deal.application.service import DealApplicationService
from src.gm_gateway.auth.dependencies import get_current_user
from src.gm_gateway.user.db_models import UserModel

router = APIRouter(tags=["deals"])

_service = DealApplicationService()

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.post("/items/{item_id}/buy", status_code=status.HTTP_201_CREATED)
async def buy_item(
    item_id: int, request: Request, current_user: CurrentUser, db: DbSession
) -> ApiResponse:
    deal = await _service.buy(db, item_id, str(current_user.id))
    return respond(request, deal.model_dump(), message="Deal created")


@router.post("/deals/{deal_id}/seller-confirm")
async def seller_confirm(
    deal_id: int, request: Request, current_user: CurrentUser, db: DbSession
) -> ApiResponse:
    result = await _service.seller_confirm(db, deal_id, str(current_user.id))
    return respond(request, result.model_dump())


@router.post("/deals/{deal_id}/buyer-complete")
async def buyer_complete(
    deal_id: int, request: Request, current_user: CurrentUser, db: DbSession
) -> ApiResponse:
    result = await _service.buyer_complete(db, deal_id, str(current_user.id))
    return respond(request, result.model_dump())


@router.post("/deals/{deal_id}/dispute")
async def open_dispute(
    deal_id: int, request: Request, current_user: CurrentUser, db: DbSession
) -> ApiResponse:
    result = await _service.dispute(db, deal_id, str(current_user.id))
    return respond(request, result.model_dump())


@router.get("/deals")
async def list_deals(request: Request, current_user: CurrentUser, db: DbSession) -> ApiResponse:
    deals = await _service.list_deals(db, str(current_user.id))
    return respond(request, [d.model_dump() for d in deals])
