"""FastAPI dependencies: get_current_user, require_admin.

Usage in any protected router:
    from src.gm_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_common.database import get_db_session
from src.gm_common.errors import AccountDisabledError, AdminRequiredError, InvalidCredentialsError
from src.gm_gateway.auth.jwt_handler import decode_token
from src.gm_gateway.user.db_models import UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Validate the Bearer token and load the user row.

    Raises HTTP 401 if the token is missing, invalid, expired, or names a
    user that no longer exists.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


def is_admin(user: UserModel) -> bool:
    return user.nickname.lower() in settings.admin_nicknames


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Allow only nicknames listed in ADMIN_NICKNAMES (case-insensitive)."""
    if not is_admin(current_user):
        raise AdminRequiredError()
    return current_user
