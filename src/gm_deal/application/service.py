"""DealApplicationService — escrow purchase flow.

Every operation is one transaction on the request session:

    buy             lock item -> insert deal -> freeze buyer funds
                    -> item active->reserved -> open chat + system message
    seller_confirm  lock deal -> pending->seller_confirmed -> system message
    buyer_complete  lock deal -> lock item -> release funds to the seller
                    -> deal completed, item reserved->sold -> system message
    dispute         lock deal -> dispute -> system message (funds stay frozen)

Lock order is always deal, item, accounts. Any guard failure rolls the whole
transaction back, so a failed call leaves balances and statuses untouched.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_account.domain.repository import AccountRepositoryProtocol
from src.gm_account.infrastructure.persistence import AccountRepository
from src.gm_catalog.domain.repository import ItemRepositoryProtocol
from src.gm_catalog.infrastructure.persistence import ItemRepository
from src.gm_chat.domain.repository import ChatRepositoryProtocol
from src.gm_chat.infrastructure.persistence import ChatRepository
from src.gm_common.enums import ChatMessageType, ItemStatus
from src.gm_common.errors import (
    DealNotFoundError,
    DealStateConflictError,
    ItemNotAvailableError,
    ItemNotFoundError,
    SelfPurchaseError,
)
from src.gm_deal.application.schemas import DealActionResponse, DealResponse
from src.gm_deal.domain.models import Deal
from src.gm_deal.domain.repository import DealRepositoryProtocol
from src.gm_deal.domain.state_machine import DealAction, DealRole, next_status, role_of
from src.gm_deal.infrastructure.persistence import DealRepository

logger = logging.getLogger(__name__)

MSG_DEAL_OPENED = "Создан чат сделки. Общайтесь и передавайте товар здесь."
MSG_SELLER_CONFIRMED = "Продавец подтвердил передачу товара."
MSG_COMPLETED = "Сделка завершена. Средства зачислены продавцу."
MSG_DISPUTE = "Открыт спор по сделке. Дождитесь решения модератора."

_ACTION_MESSAGES = {
    DealAction.SELLER_CONFIRM: MSG_SELLER_CONFIRMED,
    DealAction.BUYER_COMPLETE: MSG_COMPLETED,
    DealAction.DISPUTE: MSG_DISPUTE,
}


class DealApplicationService:
    def __init__(
        self,
        deals: DealRepositoryProtocol | None = None,
        items: ItemRepositoryProtocol | None = None,
        accounts: AccountRepositoryProtocol | None = None,
        chats: ChatRepositoryProtocol | None = None,
    ) -> None:
        self._deals: DealRepositoryProtocol = deals or DealRepository()
        self._items: ItemRepositoryProtocol = items or ItemRepository()
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._chats: ChatRepositoryProtocol = chats or ChatRepository()

    async def buy(self, db: AsyncSession, item_id: int, buyer_id: str) -> DealResponse:
        try:
            item = await self._items.lock_item(db, item_id)
            if item is None:
                raise ItemNotFoundError(str(item_id))
            if item.seller_id == buyer_id:
                raise SelfPurchaseError()
            if item.status != ItemStatus.ACTIVE:
                raise ItemNotAvailableError(str(item_id), item.status)

            deal = await self._deals.insert_deal(db, item.id, buyer_id, item.seller_id, item.price)
            # operations.amount must be positive: free items move no money
            if deal.price > 0:
                await self._accounts.freeze(db, buyer_id, deal.price, str(deal.id))
            if not await self._items.transition_status(
                db, item.id, ItemStatus.ACTIVE.value, ItemStatus.RESERVED.value
            ):
                raise ItemNotAvailableError(str(item_id), item.status)

            chat = await self._chats.get_or_create_for_deal(db, deal.id, buyer_id, item.seller_id)
            await self._chats.add_message(
                db, chat.id, None, ChatMessageType.SYSTEM.value, MSG_DEAL_OPENED
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Deal created: id=%d item=%d buyer=%s seller=%s price=%d",
            deal.id, item.id, buyer_id, item.seller_id, deal.price,
        )
        deal.item_name = item.name
        deal.item_photo = item.photo_ref
        return DealResponse.from_domain(deal, DealRole.BUYER, chat_id=chat.id)

    async def seller_confirm(
        self, db: AsyncSession, deal_id: int, user_id: str
    ) -> DealActionResponse:
        return await self._apply(db, deal_id, user_id, DealAction.SELLER_CONFIRM)

    async def buyer_complete(
        self, db: AsyncSession, deal_id: int, user_id: str
    ) -> DealActionResponse:
        return await self._apply(db, deal_id, user_id, DealAction.BUYER_COMPLETE)

    async def dispute(self, db: AsyncSession, deal_id: int, user_id: str) -> DealActionResponse:
        return await self._apply(db, deal_id, user_id, DealAction.DISPUTE)

    async def _apply(
        self, db: AsyncSession, deal_id: int, user_id: str, action: DealAction
    ) -> DealActionResponse:
        try:
            deal = await self._deals.lock_deal(db, deal_id)
            if deal is None:
                raise DealNotFoundError(str(deal_id))
            role = role_of(deal.buyer_id, deal.seller_id, user_id)
            target = next_status(deal.id, deal.status, role, action)

            if action is DealAction.BUYER_COMPLETE:
                await self._settle(db, deal)

            if not await self._deals.transition(db, deal.id, deal.status, target.value):
                raise DealStateConflictError(str(deal.id), deal.status, action.value)

            chat = await self._chats.get_or_create_for_deal(
                db, deal.id, deal.buyer_id, deal.seller_id
            )
            await self._chats.add_message(
                db, chat.id, None, ChatMessageType.SYSTEM.value, _ACTION_MESSAGES[action]
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Deal %d: %s by %s %s -> %s", deal.id, action.value, role.value, deal.status, target.value
        )
        return DealActionResponse(deal_id=deal.id, status=target.value)

    async def _settle(self, db: AsyncSession, deal: Deal) -> None:
        item = await self._items.lock_item(db, deal.item_id)
        if item is None:
            raise ItemNotFoundError(str(deal.item_id))
        if deal.price > 0:
            await self._accounts.release(
                db, deal.buyer_id, deal.seller_id, deal.price, str(deal.id)
            )
        if not await self._items.transition_status(
            db, deal.item_id, ItemStatus.RESERVED.value, ItemStatus.SOLD.value
        ):
            raise ItemNotAvailableError(str(deal.item_id), item.status)

    async def list_deals(self, db: AsyncSession, user_id: str) -> list[DealResponse]:
        deals = await self._deals.list_for_user(db, user_id)
        return [
            DealResponse.from_domain(d, role_of(d.buyer_id, d.seller_id, user_id)) for d in deals
        ]
