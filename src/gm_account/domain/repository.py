"""Ledger repository Protocol.

Unit tests inject a mock or an in-memory fake conforming to this Protocol;
infrastructure provides the SQL implementation. Every method runs on the
caller's session and never commits.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_account.domain.models import Account, Operation


class AccountRepositoryProtocol(Protocol):
    async def get_account(
        self, db: AsyncSession, user_id: str
    ) -> Account | None: ...

    async def freeze(
        self, db: AsyncSession, user_id: str, amount: int, deal_id: str
    ) -> Account: ...

    async def release(
        self, db: AsyncSession, buyer_id: str, seller_id: str, amount: int, deal_id: str
    ) -> tuple[Account, Account]: ...

    async def credit_adjust(
        self, db: AsyncSession, user_id: str, delta: int, reason: str | None
    ) -> tuple[Account, Operation]: ...

    async def request_topup(
        self, db: AsyncSession, user_id: str, amount: int, description: str
    ) -> Operation: ...

    async def withdraw(
        self, db: AsyncSession, user_id: str, amount: int, description: str
    ) -> tuple[Account, Operation]: ...

    async def list_operations(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        op_type: str | None,
    ) -> list[Operation]: ...
