"""Auth API router: register, login, refresh, me.

All endpoints return ApiResponse[T]. request_id is read from
request.state (injected by RequestLogMiddleware).
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_account.infrastructure.persistence import AccountRepository
from src.gm_common.database import get_db_session
from src.gm_common.datetime_utils import to_iso
from src.gm_common.response import ApiResponse, respond
from src.gm_gateway.auth.dependencies import get_current_user, is_admin
from src.gm_gateway.auth.jwt_handler import create_access_token
from src.gm_gateway.user.db_models import UserModel
from src.gm_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from src.gm_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()
_accounts = AccountRepository()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="User registration",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    async with db.begin():
        user = await _service.register(body.nickname, body.password, db)

    data = RegisterResponse(
        user_id=str(user.id),
        nickname=user.nickname,
        access_token=create_access_token(str(user.id), user.nickname),
        created_at=to_iso(user.created_at),
    )
    return respond(request, data.model_dump(), message="User registered successfully")


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="User login",
)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.nickname, body.password, db)

    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="Bearer",
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=UserInfo(user_id=str(user.id), nickname=user.nickname, is_admin=is_admin(user)),
    )
    return respond(request, data.model_dump(), message="Login successful")


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Refresh access token",
)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token)

    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    return respond(request, data.model_dump(), message="Token refreshed")


@router.get("/me", response_model=ApiResponse, summary="Current user profile")
async def me(
    request: Request,
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    account = await _accounts.get_account(db, str(current_user.id))
    data = MeResponse(
        user_id=str(current_user.id),
        nickname=current_user.nickname,
        avatar_url=current_user.avatar_url,
        available_balance=account.available_balance if account else 0,
        frozen_balance=account.frozen_balance if account else 0,
        is_admin=is_admin(current_user),
    )
    return respond(request, data.model_dump())
