"""gm_catalog REST endpoints.

POST /items                   — create a listing (multipart, photo required)
GET  /items                   — active listings, newest first
GET  /items/hot               — a few random active listings
GET  /items/game/{game_id}    — active listings of one game
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.application.service import CatalogApplicationService
from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_user
from src.gm_gateway.user.db_models import UserModel

router = APIRouter(prefix="/items", tags=["items"])

_service = CatalogApplicationService()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_item(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    game_id: Annotated[int, Form()],
    name: Annotated[str, Form(min_length=1, max_length=300)],
    desc: Annotated[str, Form(min_length=1, max_length=5000)],
    price: Annotated[int, Form(ge=0)],
    photo: Annotated[UploadFile, File()],
) -> ApiResponse:
    content = await photo.read()
    data = await _service.create_item(
        db,
        seller_id=str(current_user.id),
        game_id=game_id,
        name=name,
        description=desc,
        price=price,
        photo=content,
        content_type=photo.content_type,
        filename=photo.filename,
    )
    return respond(request, data.model_dump(), message="Item created")


@router.get("")
async def list_items(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    items = await _service.list_active(db, limit, offset)
    return respond(request, [i.model_dump() for i in items])


@router.get("/hot")
async def list_hot_items(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    items = await _service.list_hot(db)
    return respond(request, [i.model_dump() for i in items])


@router.get("/game/{game_id}")
async def list_game_items(
    game_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    items = await _service.list_by_game(db, game_id)
    return respond(request, [i.model_dump() for i in items])
