"""AccountRepository — SQL implementation of AccountRepositoryProtocol.

All balance mutations are single guarded ``UPDATE ... RETURNING`` statements.
A result of 0 rows means a business constraint was violated (insufficient
available balance) or the account does not exist.

Transaction ownership: the CALLER (application service) commits or rolls back.
Every balance change writes its audit row in ``operations`` on the same session,
so both land together or not at all.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_account.domain.models import Account, Operation
from src.gm_common.enums import OperationStatus, OperationType
from src.gm_common.errors import AccountNotFoundError, InsufficientBalanceError, InternalError

_ACCOUNT_COLUMNS = "user_id, available_balance, frozen_balance, version, created_at, updated_at"

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_id = :user_id
""")

_FREEZE_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance - :amount,
        frozen_balance    = frozen_balance    + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

# No frozen >= amount guard: the frozen amount equals the deal price by
# construction (set at freeze time, never altered). ck_accounts_frozen_gte_0
# still rejects a negative result.
_RELEASE_FROZEN_SQL = text(f"""
    UPDATE accounts
    SET frozen_balance = frozen_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

_CREDIT_AVAILABLE_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING {_ACCOUNT_COLUMNS}
""")

_ADJUST_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance + :delta,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_balance + :delta >= 0
    RETURNING {_ACCOUNT_COLUMNS}
""")

_WITHDRAW_SQL = text(f"""
    UPDATE accounts
    SET available_balance = available_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

_INSERT_OPERATION_SQL = text("""
    INSERT INTO operations
        (user_id, op_type, amount, status, reference_id, description)
    VALUES
        (:user_id, :op_type, :amount, :status, :reference_id, :description)
    RETURNING id, user_id, op_type, amount, status, reference_id, description, created_at
""")

# asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL
_LIST_OPERATIONS_SQL = text("""
    SELECT id, user_id, op_type, amount, status, reference_id, description, created_at
    FROM operations
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:op_type AS TEXT) IS NULL OR op_type = CAST(:op_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        frozen_balance=row.frozen_balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_operation(row: object) -> Operation:
    return Operation(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        op_type=row.op_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete ledger repository — every mutation atomic at the SQL level."""

    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def _available_of(self, db: AsyncSession, user_id: str) -> int:
        account = await self.get_account(db, user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account.available_balance

    async def _record(
        self,
        db: AsyncSession,
        user_id: str,
        op_type: OperationType,
        amount: int,
        status: OperationStatus = OperationStatus.COMPLETED,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> Operation:
        result = await db.execute(
            _INSERT_OPERATION_SQL,
            {
                "user_id": user_id,
                "op_type": op_type.value,
                "amount": amount,
                "status": status.value,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Operation insert returned no rows")
        return _row_to_operation(row)

    async def freeze(
        self, db: AsyncSession, user_id: str, amount: int, deal_id: str
    ) -> Account:
        result = await db.execute(_FREEZE_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InsufficientBalanceError(amount, await self._available_of(db, user_id))
        await self._record(
            db, user_id, OperationType.DEAL_FREEZE, amount,
            reference_id=deal_id, description=f"Funds frozen for deal {deal_id}",
        )
        return _row_to_account(row)

    async def release(
        self, db: AsyncSession, buyer_id: str, seller_id: str, amount: int, deal_id: str
    ) -> tuple[Account, Account]:
        updated: dict[str, Account] = {}
        # Lock rows in a stable order so two releases over the same pair cannot deadlock.
        for user_id in sorted((buyer_id, seller_id)):
            sql = _RELEASE_FROZEN_SQL if user_id == buyer_id else _CREDIT_AVAILABLE_SQL
            result = await db.execute(sql, {"user_id": user_id, "amount": amount})
            row = result.fetchone()
            if row is None:
                raise AccountNotFoundError(user_id)
            updated[user_id] = _row_to_account(row)
        await self._record(
            db, buyer_id, OperationType.DEAL_RELEASE, amount,
            reference_id=deal_id, description=f"Frozen funds released for deal {deal_id}",
        )
        await self._record(
            db, seller_id, OperationType.DEAL_PAYOUT, amount,
            reference_id=deal_id, description=f"Payout for deal {deal_id}",
        )
        return updated[buyer_id], updated[seller_id]

    async def credit_adjust(
        self, db: AsyncSession, user_id: str, delta: int, reason: str | None
    ) -> tuple[Account, Operation]:
        result = await db.execute(_ADJUST_SQL, {"user_id": user_id, "delta": delta})
        row = result.fetchone()
        if row is None:
            raise InsufficientBalanceError(-delta, await self._available_of(db, user_id))
        op_type = OperationType.ADMIN_CREDIT if delta > 0 else OperationType.ADMIN_DEBIT
        operation = await self._record(db, user_id, op_type, abs(delta), description=reason)
        return _row_to_account(row), operation

    async def request_topup(
        self, db: AsyncSession, user_id: str, amount: int, description: str
    ) -> Operation:
        # Simulated payment: the request is logged as pending, balances are untouched.
        return await self._record(
            db, user_id, OperationType.TOPUP, amount,
            status=OperationStatus.PENDING, description=description,
        )

    async def withdraw(
        self, db: AsyncSession, user_id: str, amount: int, description: str
    ) -> tuple[Account, Operation]:
        result = await db.execute(_WITHDRAW_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InsufficientBalanceError(amount, await self._available_of(db, user_id))
        operation = await self._record(
            db, user_id, OperationType.WITHDRAW, amount,
            status=OperationStatus.PENDING, description=description,
        )
        return _row_to_account(row), operation

    async def list_operations(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        op_type: str | None,
    ) -> list[Operation]:
        result = await db.execute(
            _LIST_OPERATIONS_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "op_type": op_type,
                "limit": limit,
            },
        )
        return [_row_to_operation(row) for row in result.fetchall()]
