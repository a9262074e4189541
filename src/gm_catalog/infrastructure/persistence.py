"""ItemRepository — concrete implementation of ItemRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.domain.models import DealListing, Item, NewItem

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_ITEM_COLUMNS = """
    i.id, i.game_id, i.seller_id, i.name, i.description, i.price,
    i.photo_ref, i.status, i.dedup_key, i.created_at, i.updated_at
"""

_GET_ITEM_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM items i
    WHERE i.id = :item_id
""")

_LOCK_ITEM_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM items i
    WHERE i.id = :item_id
    FOR UPDATE
""")

_FIND_KEY_SQL = text("""
    SELECT dedup_key
    FROM items
    WHERE dedup_key = ANY(:keys)
    LIMIT 1
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO items
        (game_id, seller_id, name, description, price, photo_ref, status, dedup_key)
    VALUES
        (:game_id, :seller_id, :name, :description, :price, :photo_ref, 'active', :dedup_key)
    ON CONFLICT (dedup_key) DO NOTHING
    RETURNING id, game_id, seller_id, name, description, price,
              photo_ref, status, dedup_key, created_at, updated_at
""")

_LIST_NAMES_SQL = text("""
    SELECT name
    FROM items
    WHERE game_id = :game_id AND seller_id = :seller_id
""")

_TRANSITION_STATUS_SQL = text("""
    UPDATE items
    SET status = :to_status,
        updated_at = NOW()
    WHERE id = :item_id AND status = :from_status
    RETURNING id
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM items i
    WHERE i.status = 'active'
    ORDER BY i.created_at DESC, i.id DESC
    LIMIT :limit OFFSET :offset
""")

_LIST_RANDOM_ACTIVE_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM items i
    WHERE i.status = 'active'
    ORDER BY random()
    LIMIT :limit
""")

_LIST_BY_GAME_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM items i
    WHERE i.game_id = :game_id AND i.status = 'active'
    ORDER BY i.created_at DESC, i.id DESC
""")

_LIST_BY_SELLER_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}
    FROM items i
    WHERE i.seller_id = :seller_id
    ORDER BY i.created_at DESC, i.id DESC
""")

_LIST_PURCHASES_SQL = text(f"""
    SELECT {_ITEM_COLUMNS},
           d.id AS deal_id, d.price AS deal_price, d.status AS deal_status,
           d.created_at AS deal_created_at,
           seller.nickname AS counterparty_nickname
    FROM deals d
    JOIN items i ON i.id = d.item_id
    JOIN users seller ON seller.id = i.seller_id
    WHERE d.buyer_id = :user_id
    ORDER BY d.created_at DESC, d.id DESC
""")

_LIST_SALES_SQL = text(f"""
    SELECT {_ITEM_COLUMNS},
           d.id AS deal_id, d.price AS deal_price, d.status AS deal_status,
           d.created_at AS deal_created_at,
           buyer.nickname AS counterparty_nickname
    FROM deals d
    JOIN items i ON i.id = d.item_id
    JOIN users buyer ON buyer.id = d.buyer_id
    WHERE i.seller_id = :user_id
    ORDER BY d.created_at DESC, d.id DESC
""")

# --- admin ---

_ADMIN_SEARCH_SQL = text(f"""
    SELECT {_ITEM_COLUMNS}, u.nickname AS seller_nickname
    FROM items i
    LEFT JOIN users u ON u.id = i.seller_id
    WHERE (CAST(:game_id AS BIGINT) IS NULL OR i.game_id = CAST(:game_id AS BIGINT))
      AND (CAST(:q AS TEXT) IS NULL OR LOWER(i.name) LIKE '%' || CAST(:q AS TEXT) || '%')
      AND (CAST(:status AS TEXT) IS NULL OR i.status = CAST(:status AS TEXT))
    ORDER BY i.id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_DEALS_SQL = text("""
    SELECT COUNT(*) AS c FROM deals WHERE item_id = :item_id
""")

_DELETE_ITEM_SQL = text("""
    DELETE FROM items WHERE id = :item_id
""")

_ALL_NAMES_SQL = text("""
    SELECT id, name FROM items ORDER BY id
""")

_RENAME_SQL = text("""
    UPDATE items SET name = :name, updated_at = NOW() WHERE id = :item_id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_item(row: object) -> Item:
    return Item(
        id=row.id,  # type: ignore[attr-defined]
        game_id=row.game_id,  # type: ignore[attr-defined]
        seller_id=str(row.seller_id),  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        photo_ref=row.photo_ref,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        dedup_key=row.dedup_key,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        seller_nickname=getattr(row, "seller_nickname", None),
    )


def _row_to_listing(row: object) -> DealListing:
    return DealListing(
        item=_row_to_item(row),
        deal_id=row.deal_id,  # type: ignore[attr-defined]
        deal_price=row.deal_price,  # type: ignore[attr-defined]
        deal_status=row.deal_status,  # type: ignore[attr-defined]
        deal_created_at=row.deal_created_at,  # type: ignore[attr-defined]
        counterparty_nickname=row.counterparty_nickname,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ItemRepository:
    """Concrete repository. Writes never commit; the calling service does."""

    async def get_item(self, db: AsyncSession, item_id: int) -> Item | None:
        result = await db.execute(_GET_ITEM_SQL, {"item_id": item_id})
        row = result.fetchone()
        return _row_to_item(row) if row else None

    async def lock_item(self, db: AsyncSession, item_id: int) -> Item | None:
        result = await db.execute(_LOCK_ITEM_SQL, {"item_id": item_id})
        row = result.fetchone()
        return _row_to_item(row) if row else None

    async def find_existing_key(self, db: AsyncSession, keys: list[str]) -> str | None:
        result = await db.execute(_FIND_KEY_SQL, {"keys": keys})
        row = result.fetchone()
        return row.dedup_key if row else None

    async def insert_item(self, db: AsyncSession, item: NewItem) -> Item | None:
        result = await db.execute(
            _INSERT_ITEM_SQL,
            {
                "game_id": item.game_id,
                "seller_id": item.seller_id,
                "name": item.name,
                "description": item.description,
                "price": item.price,
                "photo_ref": item.photo_ref,
                "dedup_key": item.dedup_key,
            },
        )
        row = result.fetchone()
        return _row_to_item(row) if row else None

    async def list_names(self, db: AsyncSession, game_id: int, seller_id: str) -> list[str]:
        result = await db.execute(
            _LIST_NAMES_SQL, {"game_id": game_id, "seller_id": seller_id}
        )
        return [row.name for row in result.fetchall()]

    async def transition_status(
        self, db: AsyncSession, item_id: int, from_status: str, to_status: str
    ) -> bool:
        result = await db.execute(
            _TRANSITION_STATUS_SQL,
            {"item_id": item_id, "from_status": from_status, "to_status": to_status},
        )
        return result.fetchone() is not None

    async def list_active(self, db: AsyncSession, limit: int, offset: int) -> list[Item]:
        result = await db.execute(_LIST_ACTIVE_SQL, {"limit": limit, "offset": offset})
        return [_row_to_item(row) for row in result.fetchall()]

    async def list_random_active(self, db: AsyncSession, limit: int) -> list[Item]:
        result = await db.execute(_LIST_RANDOM_ACTIVE_SQL, {"limit": limit})
        return [_row_to_item(row) for row in result.fetchall()]

    async def list_by_game(self, db: AsyncSession, game_id: int) -> list[Item]:
        result = await db.execute(_LIST_BY_GAME_SQL, {"game_id": game_id})
        return [_row_to_item(row) for row in result.fetchall()]

    async def list_by_seller(self, db: AsyncSession, seller_id: str) -> list[Item]:
        result = await db.execute(_LIST_BY_SELLER_SQL, {"seller_id": seller_id})
        return [_row_to_item(row) for row in result.fetchall()]

    async def list_purchases(self, db: AsyncSession, buyer_id: str) -> list[DealListing]:
        result = await db.execute(_LIST_PURCHASES_SQL, {"user_id": buyer_id})
        return [_row_to_listing(row) for row in result.fetchall()]

    async def list_sales(self, db: AsyncSession, seller_id: str) -> list[DealListing]:
        result = await db.execute(_LIST_SALES_SQL, {"user_id": seller_id})
        return [_row_to_listing(row) for row in result.fetchall()]

    # --- admin ---

    async def search(
        self,
        db: AsyncSession,
        game_id: int | None,
        q: str | None,
        status: str | None,
        limit: int,
        offset: int,
    ) -> list[Item]:
        result = await db.execute(
            _ADMIN_SEARCH_SQL,
            {
                "game_id": game_id,
                "q": q.lower() if q else None,
                "status": status,
                "limit": limit,
                "offset": offset,
            },
        )
        return [_row_to_item(row) for row in result.fetchall()]

    async def count_deals(self, db: AsyncSession, item_id: int) -> int:
        result = await db.execute(_COUNT_DEALS_SQL, {"item_id": item_id})
        return int(result.scalar_one())

    async def delete_item(self, db: AsyncSession, item_id: int) -> None:
        await db.execute(_DELETE_ITEM_SQL, {"item_id": item_id})

    async def list_all_names(self, db: AsyncSession) -> list[tuple[int, str]]:
        result = await db.execute(_ALL_NAMES_SQL)
        return [(row.id, row.name) for row in result.fetchall()]

    async def rename(self, db: AsyncSession, item_id: int, name: str) -> None:
        await db.execute(_RENAME_SQL, {"item_id": item_id, "name": name})
