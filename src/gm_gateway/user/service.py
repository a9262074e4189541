"""User service: register, login, refresh.

Transactions are managed by the caller (router layer) via `async with db.begin()`.
"""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.errors import (
    AccountDisabledError,
    InvalidCredentialsError,
    NicknameExistsError,
)
from src.gm_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.gm_gateway.auth.password import hash_password, verify_password
from src.gm_gateway.user.db_models import UserModel

_CREATE_ACCOUNT_SQL = text(
    "INSERT INTO accounts (user_id, available_balance, frozen_balance, version) "
    "VALUES (:user_id, 0, 0, 0)"
)


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    async def register(
        self,
        nickname: str,
        password: str,
        db: AsyncSession,
    ) -> UserModel:
        """Insert the user and its zero-balance account row in one transaction.

        Nickname comparison is case-insensitive; the DB UNIQUE constraint is
        the final guard.
        """
        result = await db.execute(
            select(UserModel).where(UserModel.nickname.ilike(nickname))
        )
        if result.scalar_one_or_none() is not None:
            raise NicknameExistsError()

        user = UserModel(
            nickname=nickname,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()  # assigns user.id

        await db.execute(_CREATE_ACCOUNT_SQL, {"user_id": str(user.id)})
        return user

    async def login(
        self,
        nickname: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Return (user, access_token, refresh_token).

        Unknown nickname and wrong password raise the same error.
        """
        result = await db.execute(
            select(UserModel).where(UserModel.nickname == nickname)
        )
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id), user.nickname),
            create_refresh_token(str(user.id), user.nickname),
        )

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]), str(payload.get("nick", "")))
