"""CatalogApplicationService — listing creation and catalog browsing.

create_item commits on success; on any failure the transaction is rolled
back and the already written photo file is removed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_catalog.application.schemas import DealListingResponse, ItemResponse
from src.gm_catalog.domain.dedup import candidate_keys
from src.gm_catalog.domain.models import NewItem
from src.gm_catalog.domain.repository import ItemRepositoryProtocol
from src.gm_catalog.domain.title import cleanup_title, normalize_title_for_dedup
from src.gm_catalog.infrastructure.persistence import ItemRepository
from src.gm_catalog.infrastructure.storage import PhotoStorage, extension_for, get_photo_storage
from src.gm_common.errors import DuplicateItemError, InvalidRequestError
from src.gm_common.money import validate_price

logger = logging.getLogger(__name__)

HOT_ITEMS_LIMIT = 5


class CatalogApplicationService:
    def __init__(
        self,
        repo: ItemRepositoryProtocol | None = None,
        storage: PhotoStorage | None = None,
    ) -> None:
        self._repo: ItemRepositoryProtocol = repo or ItemRepository()
        self._storage = storage

    @property
    def storage(self) -> PhotoStorage:
        if self._storage is None:
            self._storage = get_photo_storage()
        return self._storage

    async def create_item(
        self,
        db: AsyncSession,
        seller_id: str,
        game_id: int,
        name: str,
        description: str,
        price: int,
        photo: bytes,
        content_type: str | None = None,
        filename: str | None = None,
    ) -> ItemResponse:
        clean_name = cleanup_title(name)
        if not clean_name:
            raise InvalidRequestError("Item name is empty")
        try:
            validate_price(price)
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc
        if not photo:
            raise InvalidRequestError("Item photo is required")

        keys = candidate_keys(game_id, seller_id, normalize_title_for_dedup(clean_name))
        existing = await self._repo.find_existing_key(db, keys)
        if existing is not None:
            raise DuplicateItemError(existing)

        photo_ref = await self.storage.save_item_photo(
            photo, extension_for(content_type, filename)
        )
        try:
            item = await self._repo.insert_item(
                db,
                NewItem(
                    game_id=game_id,
                    seller_id=seller_id,
                    name=clean_name,
                    description=description,
                    price=price,
                    photo_ref=photo_ref,
                    dedup_key=keys[0],
                ),
            )
            if item is None:
                # Lost a race with a concurrent insert of the same key
                raise DuplicateItemError(keys[0])
            await db.commit()
        except Exception:
            await db.rollback()
            self.storage.delete(photo_ref)
            raise
        logger.info("Item created: id=%d seller=%s key=%s", item.id, seller_id, item.dedup_key)
        return ItemResponse.from_domain(item)

    async def list_active(self, db: AsyncSession, limit: int, offset: int) -> list[ItemResponse]:
        items = await self._repo.list_active(db, limit, offset)
        return [ItemResponse.from_domain(i) for i in items]

    async def list_hot(self, db: AsyncSession) -> list[ItemResponse]:
        items = await self._repo.list_random_active(db, HOT_ITEMS_LIMIT)
        return [ItemResponse.from_domain(i) for i in items]

    async def list_by_game(self, db: AsyncSession, game_id: int) -> list[ItemResponse]:
        items = await self._repo.list_by_game(db, game_id)
        return [ItemResponse.from_domain(i) for i in items]

    async def list_my_items(self, db: AsyncSession, seller_id: str) -> list[ItemResponse]:
        items = await self._repo.list_by_seller(db, seller_id)
        return [ItemResponse.from_domain(i) for i in items]

    async def list_purchases(self, db: AsyncSession, buyer_id: str) -> list[DealListingResponse]:
        listings = await self._repo.list_purchases(db, buyer_id)
        return [DealListingResponse.from_domain(x) for x in listings]

    async def list_sales(self, db: AsyncSession, seller_id: str) -> list[DealListingResponse]:
        listings = await self._repo.list_sales(db, seller_id)
        return [DealListingResponse.from_domain(x) for x in listings]
