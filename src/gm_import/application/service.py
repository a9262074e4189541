"""ImportApplicationService — catalog import from a third-party listing page.

One call runs the whole pipeline:

1. fetch the page (or take pasted HTML) and extract candidates
2. merge JSON-LD, app-state and DOM candidates against the seller's existing
   title keys, following "next" links while the merge is not full
3. for each accepted card: skip known dedup keys, download the image,
   store it, insert the item (ON CONFLICT DO NOTHING)

Each created item is committed on its own, so a failure late in the run
keeps what was already imported. Image failures and rows
the database rejects become ``errors[]`` entries.
"""

import logging
from collections import Counter
from collections.abc import Callable

from bs4 import BeautifulSoup
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.gm_catalog.domain.dedup import KeyScheme, candidate_keys
from src.gm_catalog.domain.models import NewItem
from src.gm_catalog.domain.repository import ItemRepositoryProtocol
from src.gm_catalog.domain.title import normalize_media_url, normalize_title_for_dedup
from src.gm_catalog.infrastructure.persistence import ItemRepository
from src.gm_catalog.infrastructure.storage import PhotoStorage, extension_for, get_photo_storage
from src.gm_common.errors import UnknownImportSourceError, UpstreamFetchError
from src.gm_import.application.schemas import (
    CreatedItem,
    ImportErrorEntry,
    ImportRequest,
    ImportResponse,
    ImportStats,
)
from src.gm_import.domain.extractors import (
    extract_json_ld,
    extract_next_data,
    find_next_url,
    iter_dom_cards,
    parse_html,
)
from src.gm_import.domain.merger import CatalogMerger
from src.gm_import.domain.models import CandidateCard, CandidateSource
from src.gm_import.infrastructure.fetcher import ImageDownloadError, PageFetcher

logger = logging.getLogger(__name__)

SUPPORTED_SOURCES = frozenset({KeyScheme.PLAYEROK.value})


class ImportApplicationService:
    def __init__(
        self,
        repo: ItemRepositoryProtocol | None = None,
        storage: PhotoStorage | None = None,
        fetcher_factory: Callable[[], PageFetcher] = PageFetcher,
    ) -> None:
        self._repo: ItemRepositoryProtocol = repo or ItemRepository()
        self._storage = storage
        self._fetcher_factory = fetcher_factory

    @property
    def storage(self) -> PhotoStorage:
        if self._storage is None:
            self._storage = get_photo_storage()
        return self._storage

    async def run_import(
        self,
        db: AsyncSession,
        source: str,
        seller_id: str,
        body: ImportRequest,
    ) -> ImportResponse:
        if source not in SUPPORTED_SOURCES:
            raise UnknownImportSourceError(source)

        cap = min(body.limit, settings.IMPORT_MAX_ITEMS)
        existing_keys: set[str] = set()
        if not body.ignore_existing:
            names = await self._repo.list_names(db, body.game_id, seller_id)
            existing_keys = {normalize_title_for_dedup(n) for n in names}
            # End the read transaction before any network I/O
            await db.rollback()
        logger.info(
            "Import start: source=%s game=%d seller=%s cap=%d existing=%d",
            source, body.game_id, seller_id, cap, len(existing_keys),
        )

        merger = CatalogMerger(existing_keys, cap)
        stats = ImportStats()
        async with self._fetcher_factory() as fetcher:
            html = body.html or await fetcher.fetch_page(str(body.url))
            stats.pages = await self._collect(fetcher, merger, html, body)

            result = merger.result
            stats.rejected_invalid = result.stats.rejected_invalid
            stats.image_duplicates = result.stats.image_duplicates
            stats.used_alt = result.stats.used_alt
            stats.skip_existing = result.stats.skip_existing
            stats.skip_in_run = result.stats.skip_in_run
            logger.info("Import merged: accepted=%d stats=%s", len(result.accepted), result.stats)

            created, errors = await self._persist(
                db, fetcher, result.accepted, body, seller_id, stats
            )

        total_found = (
            len(result.accepted)
            + stats.rejected_invalid
            + stats.image_duplicates
            + stats.skip_existing
            + stats.skip_in_run
        )
        logger.info(
            "Import done: created=%d errors=%d db_dup=%d", len(created), len(errors), stats.db_dup
        )
        return ImportResponse(
            total_found=total_found,
            processed=len(result.accepted),
            created_count=len(created),
            created=created,
            errors=errors,
            stats=stats,
        )

    async def _collect(
        self,
        fetcher: PageFetcher,
        merger: CatalogMerger,
        html: str,
        body: ImportRequest,
    ) -> int:
        """Feed the first page and any "next" pages into the merger. Returns pages read."""
        page_url = body.url
        soup = parse_html(html)
        self._scan_page(merger, soup, page_url)
        pages = 1

        # Pasted HTML has no reliable origin to paginate from
        if body.html or not page_url:
            return pages

        visited = {page_url}
        next_url = find_next_url(soup, page_url)
        hops = 0
        while (
            not merger.full
            and next_url
            and next_url not in visited
            and hops < settings.IMPORT_MAX_PAGE_HOPS
        ):
            visited.add(next_url)
            hops += 1
            try:
                next_html = await fetcher.fetch_page(next_url)
            except UpstreamFetchError as exc:
                logger.warning("Next page fetch failed, stopping pagination: %s", exc.message)
                break
            soup = parse_html(next_html)
            self._scan_page(merger, soup, next_url)
            pages += 1
            logger.info("Import page %d: %s accepted=%d", pages, next_url, len(merger.result.accepted))
            next_url = find_next_url(soup, next_url)
        return pages

    def _scan_page(self, merger: CatalogMerger, soup: BeautifulSoup, base_url: str | None) -> None:
        before = Counter(c.source for c in merger.result.accepted)
        json_ld = extract_json_ld(soup, base_url)
        next_data = extract_next_data(soup, base_url, settings.IMPORT_MAX_ITEMS)
        logger.info("Candidates: json_ld=%d next_data=%d", len(json_ld), len(next_data))
        merger.add_batches(
            {
                CandidateSource.JSON_LD: json_ld,
                CandidateSource.NEXT_DATA: next_data,
                CandidateSource.DOM: iter_dom_cards(soup, base_url),
            }
        )
        after = Counter(c.source for c in merger.result.accepted)
        logger.info(
            "Accepted from page: %s",
            {s.value: after[s] - before[s] for s in CandidateSource},
        )

    async def _persist(
        self,
        db: AsyncSession,
        fetcher: PageFetcher,
        cards: list[CandidateCard],
        body: ImportRequest,
        seller_id: str,
        stats: ImportStats,
    ) -> tuple[list[CreatedItem], list[ImportErrorEntry]]:
        created: list[CreatedItem] = []
        errors: list[ImportErrorEntry] = []
        for card in cards:
            keys = candidate_keys(body.game_id, seller_id, card.title_key)
            if await self._repo.find_existing_key(db, keys) is not None:
                stats.db_dup += 1
                continue

            try:
                content, content_type = await fetcher.fetch_image(card.image_url, referer=body.url)
                photo_ref = await self.storage.save_item_photo(
                    content, extension_for(content_type, card.image_url)
                )
            except (ImageDownloadError, OSError) as exc:
                logger.warning("Import candidate failed: %r %s: %s", card.title, card.image_url, exc)
                errors.append(
                    ImportErrorEntry(title=card.title, image_url=card.image_url, error=str(exc))
                )
                continue

            try:
                item = await self._repo.insert_item(
                    db,
                    NewItem(
                        game_id=body.game_id,
                        seller_id=seller_id,
                        name=card.title,
                        description="",
                        price=int(card.price),
                        photo_ref=photo_ref,
                        dedup_key=keys[0],
                    ),
                )
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                self.storage.delete(photo_ref)
                logger.warning("Import insert rejected: %r: %s", card.title, exc.orig)
                errors.append(
                    ImportErrorEntry(title=card.title, image_url=card.image_url, error=str(exc.orig))
                )
                continue
            except Exception:
                await db.rollback()
                self.storage.delete(photo_ref)
                raise

            if item is None:
                self.storage.delete(photo_ref)
                stats.db_dup += 1
                logger.info("DB dedup skip: key=%s title=%r", keys[0], card.title)
                continue
            created.append(
                CreatedItem(
                    id=item.id,
                    title=item.name,
                    price=item.price,
                    photo_url=normalize_media_url(item.photo_ref),
                )
            )
        return created, errors
