"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock or an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.domain.models import DealListing, Item, NewItem


class ItemRepositoryProtocol(Protocol):
    async def get_item(self, db: AsyncSession, item_id: int) -> Item | None: ...

    async def lock_item(self, db: AsyncSession, item_id: int) -> Item | None:
        """SELECT ... FOR UPDATE; holds the row until the transaction ends."""
        ...

    async def find_existing_key(self, db: AsyncSession, keys: list[str]) -> str | None: ...

    async def insert_item(self, db: AsyncSession, item: NewItem) -> Item | None:
        """Returns None when the dedup_key already exists (ON CONFLICT DO NOTHING)."""
        ...

    async def list_names(self, db: AsyncSession, game_id: int, seller_id: str) -> list[str]: ...

    async def transition_status(
        self, db: AsyncSession, item_id: int, from_status: str, to_status: str
    ) -> bool:
        """Conditional status change; False when the item is no longer in from_status."""
        ...

    async def list_active(self, db: AsyncSession, limit: int, offset: int) -> list[Item]: ...

    async def list_random_active(self, db: AsyncSession, limit: int) -> list[Item]: ...

    async def list_by_game(self, db: AsyncSession, game_id: int) -> list[Item]: ...

    async def list_by_seller(self, db: AsyncSession, seller_id: str) -> list[Item]: ...

    async def list_purchases(self, db: AsyncSession, buyer_id: str) -> list[DealListing]: ...

    async def list_sales(self, db: AsyncSession, seller_id: str) -> list[DealListing]: ...
