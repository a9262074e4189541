"""Repository Protocol — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_deal.domain.models import Deal


class DealRepositoryProtocol(Protocol):
    async def insert_deal(
        self, db: AsyncSession, item_id: int, buyer_id: str, seller_id: str, price: int
    ) -> Deal: ...

    async def lock_deal(self, db: AsyncSession, deal_id: int) -> Deal | None:
        """SELECT ... FOR UPDATE on the deal row."""
        ...

    async def transition(
        self, db: AsyncSession, deal_id: int, from_status: str, to_status: str
    ) -> bool:
        """Conditional status change; False when the deal is no longer in from_status."""
        ...

    async def list_for_user(self, db: AsyncSession, user_id: str) -> list[Deal]: ...
