"""Admin REST API. Every endpoint requires an admin nickname (ADMIN_NICKNAMES)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_admin.application.schemas import BulkDeleteRequest, CreditRequest
from src.gm_admin.application.service import USER_SEARCH_MAX, AdminService
from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import require_admin
from src.gm_gateway.user.db_models import UserModel

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()

AdminUser = Annotated[UserModel, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.get("/users")
async def search_users(
    request: Request,
    admin: AdminUser,
    db: DbSession,
    q: str | None = Query(None, max_length=64),
    limit: int = Query(20, ge=1, le=USER_SEARCH_MAX),
) -> ApiResponse:
    users = await _service.search_users(db, q, limit)
    return respond(request, [u.model_dump() for u in users])


@router.get("/users/{user_id}")
async def get_user(user_id: str, request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    user = await _service.get_user(db, user_id)
    return respond(request, user.model_dump())


@router.post("/users/{user_id}/credit")
async def credit_user(
    user_id: str,
    body: CreditRequest,
    request: Request,
    admin: AdminUser,
    db: DbSession,
) -> ApiResponse:
    result = await _service.credit(db, user_id, body.amount, body.reason, admin.nickname)
    return respond(request, result.model_dump(), message="Balance adjusted")


@router.get("/items")
async def list_items(
    request: Request,
    admin: AdminUser,
    db: DbSession,
    game_id: int | None = Query(None, ge=1),
    q: str | None = Query(None, max_length=200),
    status: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    items = await _service.list_items(db, game_id, q, status, limit, offset)
    return respond(request, [i.model_dump() for i in items])


@router.delete("/items/{item_id}")
async def delete_item(item_id: int, request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    result = await _service.delete_item(db, item_id)
    return respond(request, result, message="Item deleted")


@router.post("/items/bulk-delete")
async def bulk_delete_items(
    body: BulkDeleteRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _service.bulk_delete(db, body.ids)
    return respond(request, result.model_dump())


@router.post("/items/sanitize-titles")
async def sanitize_titles(request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    result = await _service.sanitize_titles(db)
    return respond(request, result.model_dump())
