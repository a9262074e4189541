"""Catalog import endpoint (admin only).

POST /import/{source} — scrape a listing page (or pasted HTML) into the
caller's catalog for one game.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.database import get_db_session
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import require_admin
from src.gm_gateway.user.db_models import UserModel
from src.gm_import.application.schemas import ImportRequest
from src.gm_import.application.service import ImportApplicationService

router = APIRouter(prefix="/import", tags=["import"])

_service = ImportApplicationService()


@router.post("/{source}")
async def run_import(
    source: str,
    body: ImportRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.run_import(db, source.lower(), str(admin.id), body)
    return respond(request, data.model_dump())
