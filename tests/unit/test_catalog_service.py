"""Unit tests for CatalogApplicationService.create_item and listings."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.gm_catalog.application.service import HOT_ITEMS_LIMIT, CatalogApplicationService
from src.gm_catalog.domain.models import Item, NewItem
from src.gm_catalog.infrastructure.storage import PhotoStorage
from src.gm_common.errors import DuplicateItemError, InvalidRequestError


def _db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _item_from(new: NewItem, item_id: int = 11) -> Item:
    return Item(
        id=item_id, game_id=new.game_id, seller_id=new.seller_id, name=new.name,
        description=new.description, price=new.price, photo_ref=new.photo_ref,
        status="active", dedup_key=new.dedup_key,
    )


def _repo() -> AsyncMock:
    repo = AsyncMock()
    repo.find_existing_key.return_value = None
    repo.insert_item.side_effect = lambda db, new: _item_from(new)
    return repo


def _photos(tmp_path: Path) -> list[Path]:
    items_dir = tmp_path / "items"
    return list(items_dir.iterdir()) if items_dir.exists() else []


class TestCreateItem:
    async def test_cleans_title_and_builds_current_key(self, tmp_path: Path) -> None:
        repo = _repo()
        db = _db()
        service = CatalogApplicationService(repo=repo, storage=PhotoStorage(tmp_path))

        result = await service.create_item(
            db, "u-1", 3, "  Dragon Sword - 1500 ₽ ", "sharp", 1500, b"png", "image/png"
        )

        assert result.title == "Dragon Sword"
        assert result.price_display == "1 500 ₽"
        assert result.image_url.endswith(".png")
        new_item = repo.insert_item.call_args.args[1]
        assert new_item.dedup_key == "item|3|u-1|dragon sword"
        db.commit.assert_awaited_once()
        assert len(_photos(tmp_path)) == 1

    async def test_legacy_key_collision_rejected_before_saving_photo(self, tmp_path: Path) -> None:
        repo = _repo()
        repo.find_existing_key.return_value = "manual|3|u-1|dragon sword"
        service = CatalogApplicationService(repo=repo, storage=PhotoStorage(tmp_path))

        with pytest.raises(DuplicateItemError):
            await service.create_item(_db(), "u-1", 3, "Dragon Sword", "", 10, b"png")

        assert _photos(tmp_path) == []
        repo.insert_item.assert_not_awaited()

    async def test_insert_race_removes_photo(self, tmp_path: Path) -> None:
        repo = _repo()
        repo.insert_item.side_effect = None
        repo.insert_item.return_value = None
        db = _db()
        service = CatalogApplicationService(repo=repo, storage=PhotoStorage(tmp_path))

        with pytest.raises(DuplicateItemError):
            await service.create_item(db, "u-1", 3, "Dragon Sword", "", 10, b"png")

        db.rollback.assert_awaited_once()
        assert _photos(tmp_path) == []

    @pytest.mark.parametrize(
        ("name", "price", "photo"),
        [("   ", 10, b"png"), ("Sword", -1, b"png"), ("Sword", 10, b"")],
    )
    async def test_invalid_input(self, tmp_path: Path, name: str, price: int, photo: bytes) -> None:
        service = CatalogApplicationService(repo=_repo(), storage=PhotoStorage(tmp_path))
        with pytest.raises(InvalidRequestError):
            await service.create_item(_db(), "u-1", 3, name, "", price, photo)


class TestListings:
    async def test_hot_items_use_fixed_limit(self, tmp_path: Path) -> None:
        repo = _repo()
        repo.list_random_active.return_value = []
        service = CatalogApplicationService(repo=repo, storage=PhotoStorage(tmp_path))

        assert await service.list_hot(_db()) == []
        assert repo.list_random_active.call_args.args[1] == HOT_ITEMS_LIMIT

    async def test_list_by_game_maps_items(self, tmp_path: Path) -> None:
        repo = _repo()
        repo.list_by_game.return_value = [
            Item(
                id=1, game_id=2, seller_id="u-1", name="Bow", description="", price=0,
                photo_ref="https://cdn/b.png", status="active", dedup_key="item|2|u-1|bow",
                seller_nickname="archer",
            )
        ]
        service = CatalogApplicationService(repo=repo, storage=PhotoStorage(tmp_path))

        (item,) = await service.list_by_game(_db(), 2)

        assert item.title == "Bow"
        assert item.price_display == "0 ₽"
        assert item.image_url == "https://cdn/b.png"
        assert item.seller_nickname == "archer"
