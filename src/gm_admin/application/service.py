"""Admin application service: user lookup, balance adjustments, catalog moderation.

Item deletion refuses anything referenced by a deal (deals are never deleted).
Photo files are removed only after the row deletion has been committed.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_account.domain.repository import AccountRepositoryProtocol
from src.gm_account.infrastructure.persistence import AccountRepository
from src.gm_admin.application.schemas import (
    AdminUserResponse,
    BulkDeleteResponse,
    CreditResponse,
    SanitizeResponse,
    SkippedItem,
)
from src.gm_catalog.application.schemas import ItemResponse
from src.gm_catalog.domain.title import cleanup_title
from src.gm_catalog.infrastructure.persistence import ItemRepository
from src.gm_catalog.infrastructure.storage import PhotoStorage, get_photo_storage
from src.gm_common.enums import ItemStatus
from src.gm_common.errors import (
    InvalidRequestError,
    ItemHasDealsError,
    ItemNotFoundError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

USER_SEARCH_MAX = 50

_USER_COLUMNS = """
    u.id, u.nickname, u.avatar_url, u.is_active, u.created_at,
    COALESCE(a.available_balance, 0) AS available_balance,
    COALESCE(a.frozen_balance, 0) AS frozen_balance
"""

_SEARCH_USERS_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users u
    LEFT JOIN accounts a ON a.user_id = u.id
    WHERE (CAST(:q AS TEXT) IS NULL OR LOWER(u.nickname) LIKE '%' || CAST(:q AS TEXT) || '%')
    ORDER BY u.created_at DESC
    LIMIT :limit
""")

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users u
    LEFT JOIN accounts a ON a.user_id = u.id
    WHERE u.id = :user_id
""")


def _row_to_user(row: Any) -> AdminUserResponse:
    return AdminUserResponse.from_row(
        user_id=str(row.id),
        nickname=row.nickname,
        avatar_url=row.avatar_url,
        is_active=row.is_active,
        available=row.available_balance,
        frozen=row.frozen_balance,
        created_at=row.created_at,
    )


def _parse_user_id(user_id: str) -> str:
    try:
        return str(uuid.UUID(user_id))
    except ValueError:
        raise UserNotFoundError(user_id) from None


def parse_item_id(raw: int | str) -> int | None:
    """Positive integer id, or None for anything malformed."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    s = raw.strip()
    if not s.isdigit():
        return None
    value = int(s)
    return value if value > 0 else None


def parse_status_filter(status: str | None) -> str | None:
    """'all' or empty means no filter; anything else must be an item status."""
    if not status or status.lower() == "all":
        return None
    try:
        return ItemStatus(status.lower()).value
    except ValueError:
        raise InvalidRequestError(f"Unknown item status: {status}") from None


class AdminService:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        items: ItemRepository | None = None,
        storage: PhotoStorage | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._items = items or ItemRepository()
        self._storage = storage

    @property
    def storage(self) -> PhotoStorage:
        if self._storage is None:
            self._storage = get_photo_storage()
        return self._storage

    # --- users ---

    async def search_users(
        self, db: AsyncSession, q: str | None, limit: int
    ) -> list[AdminUserResponse]:
        needle = q.strip().lower() if q and q.strip() else None
        result = await db.execute(
            _SEARCH_USERS_SQL, {"q": needle, "limit": min(limit, USER_SEARCH_MAX)}
        )
        return [_row_to_user(row) for row in result.fetchall()]

    async def get_user(self, db: AsyncSession, user_id: str) -> AdminUserResponse:
        result = await db.execute(_GET_USER_SQL, {"user_id": _parse_user_id(user_id)})
        row = result.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)
        return _row_to_user(row)

    async def credit(
        self, db: AsyncSession, user_id: str, amount: int, reason: str | None, admin: str
    ) -> CreditResponse:
        if amount == 0:
            raise InvalidRequestError("amount must not be 0")
        uid = _parse_user_id(user_id)
        if await self._accounts.get_account(db, uid) is None:
            raise UserNotFoundError(user_id)
        try:
            account, operation = await self._accounts.credit_adjust(db, uid, amount, reason)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Admin %s adjusted balance of %s by %d (%s): op=%d",
            admin, uid, amount, reason or "-", operation.id,
        )
        return CreditResponse(
            user_id=uid,
            operation_id=operation.id,
            op_type=operation.op_type,
            amount=amount,
            available_balance=account.available_balance,
            frozen_balance=account.frozen_balance,
        )

    # --- items ---

    async def list_items(
        self,
        db: AsyncSession,
        game_id: int | None,
        q: str | None,
        status: str | None,
        limit: int,
        offset: int,
    ) -> list[ItemResponse]:
        items = await self._items.search(
            db,
            game_id,
            q.strip() if q and q.strip() else None,
            parse_status_filter(status),
            limit,
            offset,
        )
        return [ItemResponse.from_domain(i) for i in items]

    async def delete_item(self, db: AsyncSession, item_id: int) -> dict[str, Any]:
        try:
            item = await self._items.get_item(db, item_id)
            if item is None:
                raise ItemNotFoundError(str(item_id))
            if await self._items.count_deals(db, item_id) > 0:
                raise ItemHasDealsError(str(item_id))
            await self._items.delete_item(db, item_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        photo_removed = self.storage.delete(item.photo_ref)
        logger.info("Admin deleted item %d (photo removed: %s)", item_id, photo_removed)
        return {"deleted": item_id, "photo_removed": photo_removed}

    async def bulk_delete(self, db: AsyncSession, raw_ids: list[int | str]) -> BulkDeleteResponse:
        deleted: list[int] = []
        skipped: list[SkippedItem] = []
        photos: list[str] = []
        try:
            for raw in raw_ids:
                item_id = parse_item_id(raw)
                if item_id is None:
                    skipped.append(SkippedItem(id=raw, reason="bad_id"))
                    continue
                if item_id in deleted:
                    continue
                item = await self._items.get_item(db, item_id)
                if item is None:
                    skipped.append(SkippedItem(id=item_id, reason="not_found"))
                    continue
                if await self._items.count_deals(db, item_id) > 0:
                    skipped.append(SkippedItem(id=item_id, reason="has_deals"))
                    continue
                await self._items.delete_item(db, item_id)
                deleted.append(item_id)
                photos.append(item.photo_ref)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        for ref in photos:
            self.storage.delete(ref)
        logger.info("Admin bulk delete: deleted=%d skipped=%d", len(deleted), len(skipped))
        return BulkDeleteResponse(deleted=deleted, skipped=skipped)

    async def sanitize_titles(self, db: AsyncSession) -> SanitizeResponse:
        """Re-run cleanup_title over stored names. Dedup keys are left as they are."""
        updated = 0
        try:
            rows = await self._items.list_all_names(db)
            for item_id, name in rows:
                clean = cleanup_title(name)
                if clean and clean != name:
                    await self._items.rename(db, item_id, clean)
                    updated += 1
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Sanitized titles: %d of %d updated", updated, len(rows))
        return SanitizeResponse(total=len(rows), updated=updated)
