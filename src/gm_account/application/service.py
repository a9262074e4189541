"""AccountApplicationService — thin composition layer over the ledger repository.

Topup and withdraw commit on success and roll back on any error.
Read-only calls (balance, operations) run without an explicit transaction.
"""

import logging
import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_account.application.schemas import (
    BalanceResponse,
    OperationItem,
    OperationsResponse,
    TopupResponse,
    WithdrawResponse,
    cursor_decode,
    cursor_encode,
)
from src.gm_account.domain.banks import MOCK_PAYMENT_DETAILS, is_known_bank
from src.gm_account.domain.repository import AccountRepositoryProtocol
from src.gm_account.infrastructure.persistence import AccountRepository
from src.gm_common.datetime_utils import to_iso
from src.gm_common.errors import AccountNotFoundError, InvalidRequestError
from src.gm_common.money import amount_to_display

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return BalanceResponse.from_amounts(
            user_id=user_id,
            available=account.available_balance,
            frozen=account.frozen_balance,
        )

    async def topup(
        self, db: AsyncSession, user_id: str, amount: int, bank: str
    ) -> TopupResponse:
        if not is_known_bank(bank):
            raise InvalidRequestError(f"Unknown bank: {bank}")
        comment = str(100000 + secrets.randbelow(900000))
        try:
            operation = await self._repo.request_topup(
                db, user_id, amount, f"Topup via {bank}, comment {comment}"
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Topup requested: user=%s amount=%d op=%d", user_id, amount, operation.id)
        return TopupResponse(
            operation_id=operation.id,
            status=operation.status,
            amount=amount,
            amount_display=amount_to_display(amount),
            payment_details=MOCK_PAYMENT_DETAILS,
            comment=comment,
        )

    async def withdraw(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        bank: str,
        country: str,
        card_number: str,
    ) -> WithdrawResponse:
        if not is_known_bank(bank, country):
            raise InvalidRequestError(f"Bank {bank} is not available in {country}")
        description = f"Withdraw to {bank} ({country}) card *{card_number[-4:]}"
        try:
            account, operation = await self._repo.withdraw(db, user_id, amount, description)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Withdraw requested: user=%s amount=%d op=%d", user_id, amount, operation.id)
        return WithdrawResponse.from_result(
            operation_id=operation.id,
            status=operation.status,
            available=account.available_balance,
            amount=amount,
        )

    async def list_operations(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        op_type: str | None,
    ) -> OperationsResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        operations = await self._repo.list_operations(
            db, user_id, cursor_id, limit + 1, op_type
        )
        has_more = len(operations) > limit
        page = operations[:limit]

        items = [
            OperationItem(
                id=op.id,
                op_type=op.op_type,
                amount=op.amount,
                amount_display=amount_to_display(op.amount),
                status=op.status,
                reference_id=op.reference_id,
                description=op.description,
                created_at=to_iso(op.created_at),
            )
            for op in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return OperationsResponse(items=items, next_cursor=next_cursor, has_more=has_more)
