"""Unit tests for AdminService moderation flows."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.gm_account.domain.models import Account, Operation
from src.gm_admin.application.schemas import CreditRequest
from src.gm_admin.application.service import AdminService, parse_item_id, parse_status_filter
from src.gm_catalog.domain.models import Item
from src.gm_catalog.infrastructure.storage import PhotoStorage
from src.gm_common.errors import (
    InvalidRequestError,
    ItemHasDealsError,
    ItemNotFoundError,
    UserNotFoundError,
)

USER_ID = "6f1c2a1e-8d7b-4d53-9b5e-2f3b1c0a9e11"


def _db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _item(item_id: int, photo_ref: str | None = None) -> Item:
    return Item(
        id=item_id, game_id=1, seller_id="u-1", name=f"Item {item_id}", description="",
        price=10, photo_ref=photo_ref, status="active", dedup_key=f"item|1|u-1|{item_id}",
    )


async def _stored_photo(storage: PhotoStorage) -> str:
    return await storage.save_item_photo(b"img", ".jpg")


class TestParsing:
    def test_parse_item_id(self) -> None:
        assert parse_item_id(5) == 5
        assert parse_item_id(" 12 ") == 12
        assert parse_item_id("abc") is None
        assert parse_item_id(0) is None
        assert parse_item_id(True) is None

    def test_parse_status_filter(self) -> None:
        assert parse_status_filter(None) is None
        assert parse_status_filter("ALL") is None
        assert parse_status_filter("Sold") == "sold"
        with pytest.raises(InvalidRequestError):
            parse_status_filter("gone")

    def test_credit_request_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            CreditRequest(amount=0)
        assert CreditRequest(amount=-5).amount == -5


class TestCredit:
    async def test_adjusts_and_commits(self) -> None:
        accounts = AsyncMock()
        accounts.get_account.return_value = Account(USER_ID, 100, 0, 1)
        accounts.credit_adjust.return_value = (
            Account(USER_ID, 600, 0, 2),
            Operation(id=3, user_id=USER_ID, op_type="admin_credit", amount=500, status="completed"),
        )
        db = _db()

        result = await AdminService(accounts=accounts).credit(db, USER_ID, 500, "bonus", "root")

        assert result.available_balance == 600
        assert result.op_type == "admin_credit"
        db.commit.assert_awaited_once()

    async def test_malformed_or_unknown_user(self) -> None:
        accounts = AsyncMock()
        accounts.get_account.return_value = None
        service = AdminService(accounts=accounts)

        with pytest.raises(UserNotFoundError):
            await service.credit(_db(), "not-a-uuid", 5, None, "root")
        with pytest.raises(UserNotFoundError):
            await service.credit(_db(), USER_ID, 5, None, "root")
        accounts.credit_adjust.assert_not_awaited()


class TestDeleteItem:
    async def test_deletes_row_then_photo(self, tmp_path: Path) -> None:
        storage = PhotoStorage(tmp_path)
        ref = await _stored_photo(storage)
        items = AsyncMock()
        items.get_item.return_value = _item(7, ref)
        items.count_deals.return_value = 0
        db = _db()

        result = await AdminService(items=items, storage=storage).delete_item(db, 7)

        assert result == {"deleted": 7, "photo_removed": True}
        db.commit.assert_awaited_once()
        assert storage.path_for(ref) is not None and not storage.path_for(ref).exists()

    async def test_item_with_deals_is_kept(self, tmp_path: Path) -> None:
        storage = PhotoStorage(tmp_path)
        ref = await _stored_photo(storage)
        items = AsyncMock()
        items.get_item.return_value = _item(7, ref)
        items.count_deals.return_value = 1
        db = _db()

        with pytest.raises(ItemHasDealsError):
            await AdminService(items=items, storage=storage).delete_item(db, 7)

        items.delete_item.assert_not_awaited()
        db.rollback.assert_awaited_once()
        assert storage.path_for(ref).exists()

    async def test_missing_item(self, tmp_path: Path) -> None:
        items = AsyncMock()
        items.get_item.return_value = None
        with pytest.raises(ItemNotFoundError):
            await AdminService(items=items, storage=PhotoStorage(tmp_path)).delete_item(_db(), 7)


class TestBulkDelete:
    async def test_reports_skips_with_reasons(self, tmp_path: Path) -> None:
        items = AsyncMock()
        items.get_item.side_effect = lambda db, item_id: None if item_id == 3 else _item(item_id)
        items.count_deals.side_effect = lambda db, item_id: 2 if item_id == 4 else 0
        db = _db()

        result = await AdminService(items=items, storage=PhotoStorage(tmp_path)).bulk_delete(
            db, [1, "x", 3, 4, "1", 2]
        )

        assert result.deleted == [1, 2]
        assert [(s.id, s.reason) for s in result.skipped] == [
            ("x", "bad_id"), (3, "not_found"), (4, "has_deals")
        ]
        assert items.delete_item.await_count == 2
        db.commit.assert_awaited_once()


class TestSanitizeTitles:
    async def test_renames_only_changed_titles(self) -> None:
        items = AsyncMock()
        items.list_all_names.return_value = [
            (1, "Dragon Sword - 1500 ₽"),
            (2, "Bow"),
            (3, "   "),
        ]
        db = _db()

        result = await AdminService(items=items).sanitize_titles(db)

        assert (result.total, result.updated) == (3, 1)
        items.rename.assert_awaited_once_with(db, 1, "Dragon Sword")
