"""DealRepository — concrete implementation of DealRepositoryProtocol.

Deals carry no seller column: the seller is always the item's owner and is
joined in from ``items``. Status changes are conditional ``UPDATE ... WHERE
status = :from_status`` so a lost race shows up as a missing RETURNING row.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.errors import InternalError
from src.gm_deal.domain.models import Deal

_INSERT_DEAL_SQL = text("""
    INSERT INTO deals (item_id, buyer_id, price, status)
    VALUES (:item_id, :buyer_id, :price, 'pending')
    RETURNING id, item_id, buyer_id, price, status, created_at, updated_at
""")

_LOCK_DEAL_SQL = text("""
    SELECT d.id, d.item_id, d.buyer_id, i.seller_id, d.price, d.status,
           d.created_at, d.updated_at
    FROM deals d
    JOIN items i ON i.id = d.item_id
    WHERE d.id = :deal_id
    FOR UPDATE OF d
""")

_TRANSITION_SQL = text("""
    UPDATE deals
    SET status = :to_status,
        updated_at = NOW()
    WHERE id = :deal_id AND status = :from_status
    RETURNING id
""")

_LIST_FOR_USER_SQL = text("""
    SELECT d.id, d.item_id, d.buyer_id, i.seller_id, d.price, d.status,
           d.created_at, d.updated_at,
           i.name AS item_name, i.photo_ref AS item_photo,
           buyer.nickname AS buyer_nickname, seller.nickname AS seller_nickname
    FROM deals d
    JOIN items i ON i.id = d.item_id
    JOIN users buyer ON buyer.id = d.buyer_id
    JOIN users seller ON seller.id = i.seller_id
    WHERE d.buyer_id = :user_id OR i.seller_id = :user_id
    ORDER BY d.created_at DESC, d.id DESC
""")


def _row_to_deal(row: object, seller_id: str | None = None) -> Deal:
    return Deal(
        id=row.id,  # type: ignore[attr-defined]
        item_id=row.item_id,  # type: ignore[attr-defined]
        buyer_id=str(row.buyer_id),  # type: ignore[attr-defined]
        seller_id=seller_id or str(row.seller_id),  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
        item_name=getattr(row, "item_name", None),
        item_photo=getattr(row, "item_photo", None),
        buyer_nickname=getattr(row, "buyer_nickname", None),
        seller_nickname=getattr(row, "seller_nickname", None),
    )


class DealRepository:
    """Writes never commit; DealApplicationService owns the transaction."""

    async def insert_deal(
        self, db: AsyncSession, item_id: int, buyer_id: str, seller_id: str, price: int
    ) -> Deal:
        result = await db.execute(
            _INSERT_DEAL_SQL, {"item_id": item_id, "buyer_id": buyer_id, "price": price}
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Deal insert returned no rows")
        return _row_to_deal(row, seller_id=seller_id)

    async def lock_deal(self, db: AsyncSession, deal_id: int) -> Deal | None:
        result = await db.execute(_LOCK_DEAL_SQL, {"deal_id": deal_id})
        row = result.fetchone()
        return _row_to_deal(row) if row else None

    async def transition(
        self, db: AsyncSession, deal_id: int, from_status: str, to_status: str
    ) -> bool:
        result = await db.execute(
            _TRANSITION_SQL,
            {"deal_id": deal_id, "from_status": from_status, "to_status": to_status},
        )
        return result.fetchone() is not None

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[Deal]:
        result = await db.execute(_LIST_FOR_USER_SQL, {"user_id": user_id})
        return [_row_to_deal(row) for row in result.fetchall()]
