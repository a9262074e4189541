"""gm_chat REST endpoints (clients poll; there is no push channel).

GET  /chats                       — caller's deal chats with partner and last message
GET  /chats/{chat_id}/messages    — messages, optionally after a given id
POST /chats/{chat_id}/messages    — send a text message
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_chat.application.schemas import PostMessageRequest
from src.gm_chat.application.service import ChatApplicationService
from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_user
from src.gm_gateway.user.db_models import UserModel

router = APIRouter(prefix="/chats", tags=["chats"])

_service = ChatApplicationService()

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.get("")
async def list_chats(request: Request, current_user: CurrentUser, db: DbSession) -> ApiResponse:
    chats = await _service.list_chats(db, str(current_user.id))
    return respond(request, [c.model_dump() for c in chats])


@router.get("/{chat_id}/messages")
async def list_messages(
    chat_id: int,
    request: Request,
    current_user: CurrentUser,
    db: DbSession,
    after_id: int | None = Query(None, ge=0),
    limit: int = Query(200, ge=1, le=500),
) -> ApiResponse:
    messages = await _service.list_messages(db, chat_id, str(current_user.id), after_id, limit)
    return respond(request, [m.model_dump() for m in messages])


@router.post("/{chat_id}/messages", status_code=status.HTTP_201_CREATED)
async def post_message(
    chat_id: int,
    body: PostMessageRequest,
    request: Request,
    current_user: CurrentUser,
    db: DbSession,
) -> ApiResponse:
    msg = await _service.post_message(db, chat_id, str(current_user.id), body.text)
    return respond(request, msg.model_dump(), message="Message sent")
