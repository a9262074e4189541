"""Unit tests for ImportApplicationService with a fake fetcher and mock repository."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.gm_catalog.domain.models import Item, NewItem
from src.gm_catalog.infrastructure.storage import PhotoStorage
from config.settings import settings
from src.gm_common.errors import UnknownImportSourceError, UpstreamFetchError
from src.gm_import.application.schemas import ImportRequest
from src.gm_import.application.service import ImportApplicationService
from src.gm_import.infrastructure.fetcher import ImageDownloadError

SELLER = "seller-1"


def _products_html(*products: tuple[str, int, str]) -> str:
    payload = [
        {"@type": "Product", "name": name, "image": image, "offers": {"price": price}}
        for name, price, image in products
    ]
    return f'<script type="application/ld+json">{json.dumps(payload, ensure_ascii=False)}</script>'


class FakeFetcher:
    def __init__(self, broken: set[str] | None = None) -> None:
        self.broken = broken or set()
        self.pages: list[str] = []
        self.images: list[str] = []

    async def __aenter__(self) -> "FakeFetcher":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None

    async def fetch_page(self, url: str) -> str:
        self.pages.append(url)
        return ""

    async def fetch_image(self, url: str, referer: str | None = None) -> tuple[bytes, str]:
        self.images.append(url)
        if url in self.broken:
            raise ImageDownloadError("image status 404")
        return b"img", "image/png"


def _repo(existing_names: list[str] | None = None) -> AsyncMock:
    repo = AsyncMock()
    repo.list_names.return_value = existing_names or []
    repo.find_existing_key.return_value = None
    counter = iter(range(100, 200))

    async def insert_item(db: Any, new: NewItem) -> Item:
        return Item(
            id=next(counter), game_id=new.game_id, seller_id=new.seller_id, name=new.name,
            description=new.description, price=new.price, photo_ref=new.photo_ref,
            status="active", dedup_key=new.dedup_key,
        )

    repo.insert_item.side_effect = insert_item
    return repo


def _db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _service(repo: AsyncMock, tmp_path: Path, fetcher: FakeFetcher) -> ImportApplicationService:
    return ImportApplicationService(
        repo=repo, storage=PhotoStorage(tmp_path), fetcher_factory=lambda: fetcher
    )


async def test_unknown_source_rejected(tmp_path: Path) -> None:
    fetcher = FakeFetcher()
    service = _service(_repo(), tmp_path, fetcher)
    with pytest.raises(UnknownImportSourceError):
        await service.run_import(_db(), "ebay", SELLER, ImportRequest(html="<p/>", game_id=1))
    assert fetcher.pages == []


async def test_pasted_html_creates_items_and_reports_failures(tmp_path: Path) -> None:
    html = _products_html(
        ("Dragon Sword - 1500 ₽", 1500, "https://cdn/ds.png"),
        ("Shield", 300, "https://cdn/broken.png"),
        ("Helmet", 200, "https://cdn/h.png"),
    )
    repo = _repo()
    fetcher = FakeFetcher(broken={"https://cdn/broken.png"})
    db = _db()

    result = await _service(repo, tmp_path, fetcher).run_import(
        db, "playerok", SELLER, ImportRequest(html=html, game_id=7)
    )

    assert fetcher.pages == []
    assert result.total_found == 3
    assert result.processed == 3
    assert [(c.title, c.price) for c in result.created] == [("Dragon Sword", 1500), ("Helmet", 200)]
    assert result.created_count == 2
    assert [(e.title, e.error) for e in result.errors] == [("Shield", "image status 404")]
    assert result.stats.pages == 1
    assert db.commit.await_count == 2
    assert all(c.photo_url.startswith("uploads/items/") for c in result.created)
    assert len(list((tmp_path / "items").iterdir())) == 2

    first_keys = repo.find_existing_key.call_args_list[0].args[1]
    assert first_keys[0] == "item|7|seller-1|dragon sword"
    assert "playerok|7|seller-1|dragon sword" in first_keys


async def test_database_duplicates_are_skipped_before_download(tmp_path: Path) -> None:
    html = _products_html(("Dragon Sword", 1500, "https://cdn/ds.png"))
    repo = _repo()
    repo.find_existing_key.return_value = "manual|7|seller-1|dragon sword"
    fetcher = FakeFetcher()

    result = await _service(repo, tmp_path, fetcher).run_import(
        _db(), "playerok", SELLER, ImportRequest(html=html, game_id=7)
    )

    assert result.created_count == 0
    assert result.stats.db_dup == 1
    assert fetcher.images == []
    repo.insert_item.assert_not_awaited()


async def test_insert_conflict_removes_saved_photo(tmp_path: Path) -> None:
    html = _products_html(("Dragon Sword", 1500, "https://cdn/ds.png"))
    repo = _repo()
    repo.insert_item.side_effect = None
    repo.insert_item.return_value = None

    result = await _service(repo, tmp_path, FakeFetcher()).run_import(
        _db(), "playerok", SELLER, ImportRequest(html=html, game_id=7)
    )

    assert result.created_count == 0
    assert result.stats.db_dup == 1
    assert list((tmp_path / "items").iterdir()) == []


async def test_existing_titles_get_disambiguated(tmp_path: Path) -> None:
    html = _products_html(("Dragon Sword", 1500, "https://cdn/ds.png"))
    repo = _repo(existing_names=["Dragon  Sword"])

    result = await _service(repo, tmp_path, FakeFetcher()).run_import(
        _db(), "playerok", SELLER, ImportRequest(html=html, game_id=7)
    )

    assert result.stats.used_alt == 1
    assert result.created[0].title.startswith("Dragon Sword #")


async def test_ignore_existing_skips_name_lookup(tmp_path: Path) -> None:
    html = _products_html(("Dragon Sword", 1500, "https://cdn/ds.png"))
    repo = _repo(existing_names=["Dragon Sword"])

    result = await _service(repo, tmp_path, FakeFetcher()).run_import(
        _db(), "playerok", SELLER, ImportRequest(html=html, game_id=7, ignore_existing=True)
    )

    repo.list_names.assert_not_awaited()
    assert result.created[0].title == "Dragon Sword"


async def test_limit_caps_accepted_candidates(tmp_path: Path) -> None:
    html = _products_html(
        *[(name, 10, f"https://cdn/{name}.png") for name in ("Axe", "Bow", "Cape", "Dagger", "Elixir")]
    )

    result = await _service(_repo(), tmp_path, FakeFetcher()).run_import(
        _db(), "playerok", SELLER, ImportRequest(html=html, game_id=7, limit=2)
    )

    assert result.processed == 2
    assert result.created_count == 2


async def test_negative_offer_rejected_next_to_valid_one(tmp_path: Path) -> None:
    html = _products_html(
        ("Broken Sword", -150, "https://cdn/b.png"),
        ("Helmet", 200, "https://cdn/h.png"),
    )
    repo = _repo()

    result = await _service(repo, tmp_path, FakeFetcher()).run_import(
        _db(), "playerok", SELLER, ImportRequest(html=html, game_id=7)
    )

    assert [(c.title, c.price) for c in result.created] == [("Helmet", 200)]
    assert result.stats.rejected_invalid == 1
    assert result.total_found == 2
    assert result.errors == []
    assert repo.insert_item.await_count == 1


async def test_rejected_insert_becomes_error_entry(tmp_path: Path) -> None:
    html = _products_html(
        ("Dragon Sword", 1500, "https://cdn/ds.png"),
        ("Helmet", 200, "https://cdn/h.png"),
    )
    repo = _repo()
    insert_ok = repo.insert_item.side_effect

    async def insert_item(db: Any, new: NewItem) -> Item:
        if new.name == "Dragon Sword":
            raise IntegrityError("INSERT INTO items", {}, Exception("ck_items_price_gte_0"))
        return await insert_ok(db, new)

    repo.insert_item.side_effect = insert_item
    db = _db()

    result = await _service(repo, tmp_path, FakeFetcher()).run_import(
        db, "playerok", SELLER, ImportRequest(html=html, game_id=7)
    )

    assert [c.title for c in result.created] == ["Helmet"]
    assert [(e.title, e.error) for e in result.errors] == [("Dragon Sword", "ck_items_price_gte_0")]
    assert db.commit.await_count == 1
    assert len(list((tmp_path / "items").iterdir())) == 1


class PagedFetcher(FakeFetcher):
    """Serves listing pages by URL; every page links to its successor."""

    def __init__(
        self,
        pages: dict[str, str],
        failing: set[str] | None = None,
        db: MagicMock | None = None,
    ) -> None:
        super().__init__()
        self.site = pages
        self.failing = failing or set()
        self.db = db
        self.rollbacks_before_fetch: int | None = None

    async def fetch_page(self, url: str) -> str:
        if self.db is not None and self.rollbacks_before_fetch is None:
            self.rollbacks_before_fetch = self.db.rollback.await_count
        self.pages.append(url)
        if url in self.failing:
            raise UpstreamFetchError("page status 503")
        return self.site[url]


def _page(next_href: str | None, *products: tuple[str, int, str]) -> str:
    head = f'<head><link rel="next" href="{next_href}"></head>' if next_href else "<head></head>"
    return head + _products_html(*products)


def _chain(count: int) -> dict[str, str]:
    names = ["Axe", "Bow", "Cape", "Dagger", "Elixir", "Flail", "Gloves", "Hood", "Idol", "Javelin"]
    return {
        f"https://h/{n}": _page(
            f"/{n + 1}" if n < count else None,
            (names[n - 1], 10 * n, f"https://cdn/{names[n - 1]}.png"),
        )
        for n in range(1, count + 1)
    }


async def test_pagination_stops_on_link_cycle(tmp_path: Path) -> None:
    fetcher = PagedFetcher(
        {
            "https://h/1": _page("/2", ("Axe", 10, "https://cdn/axe.png")),
            "https://h/2": _page("/1", ("Bow", 20, "https://cdn/bow.png")),
        }
    )

    result = await _service(_repo(), tmp_path, fetcher).run_import(
        _db(), "playerok", SELLER, ImportRequest(url="https://h/1", game_id=7)
    )

    assert fetcher.pages == ["https://h/1", "https://h/2"]
    assert result.stats.pages == 2
    assert [c.title for c in result.created] == ["Axe", "Bow"]


async def test_pagination_stops_after_max_hops(tmp_path: Path) -> None:
    hops = settings.IMPORT_MAX_PAGE_HOPS
    fetcher = PagedFetcher(_chain(hops + 3))

    result = await _service(_repo(), tmp_path, fetcher).run_import(
        _db(), "playerok", SELLER, ImportRequest(url="https://h/1", game_id=7)
    )

    assert fetcher.pages == [f"https://h/{n}" for n in range(1, hops + 2)]
    assert result.stats.pages == hops + 1
    assert result.created_count == hops + 1


async def test_full_first_page_skips_next_page(tmp_path: Path) -> None:
    fetcher = PagedFetcher(_chain(3))

    result = await _service(_repo(), tmp_path, fetcher).run_import(
        _db(), "playerok", SELLER, ImportRequest(url="https://h/1", game_id=7, limit=1)
    )

    assert fetcher.pages == ["https://h/1"]
    assert result.stats.pages == 1
    assert [c.title for c in result.created] == ["Axe"]


async def test_next_page_failure_keeps_first_page(tmp_path: Path) -> None:
    fetcher = PagedFetcher(_chain(3), failing={"https://h/2"})

    result = await _service(_repo(), tmp_path, fetcher).run_import(
        _db(), "playerok", SELLER, ImportRequest(url="https://h/1", game_id=7)
    )

    assert fetcher.pages == ["https://h/1", "https://h/2"]
    assert result.stats.pages == 1
    assert [c.title for c in result.created] == ["Axe"]
    assert result.errors == []


async def test_name_snapshot_released_before_page_fetch(tmp_path: Path) -> None:
    db = _db()
    fetcher = PagedFetcher(_chain(1), db=db)
    repo = _repo(existing_names=["Shield"])

    await _service(repo, tmp_path, fetcher).run_import(
        db, "playerok", SELLER, ImportRequest(url="https://h/1", game_id=7)
    )

    repo.list_names.assert_awaited_once()
    assert fetcher.rollbacks_before_fetch == 1
