"""Merge candidate batches from several extractors into one import list.

Rules, applied per candidate in source priority order:

* a candidate needs a cleaned title, a finite, non-negative price and an
  image URL; DOM candidates also need a positive price
* only the first candidate per image (normalized path) is kept
* a title key already taken (by ``existing_keys`` or by an accepted card) is
  disambiguated with a stable " #NNN" token, then with " -a" .. " -9"; the
  candidate is dropped when every variant is taken
* merging stops once ``cap`` cards are accepted
"""

import math
import struct
from collections.abc import Iterable, Mapping
from dataclasses import replace
from urllib.parse import urlsplit

from src.gm_catalog.domain.title import cleanup_title, normalize_title_for_dedup
from src.gm_import.domain.models import (
    SOURCE_PRIORITY,
    CandidateCard,
    CandidateSource,
    MergeResult,
)

MAX_CAP = 50

FALLBACK_SUFFIXES: tuple[str, ...] = tuple(f"-{c}" for c in "abcdefghijklmnopqrstuvwxyz") + tuple(
    f"-{d}" for d in range(1, 10)
)


def image_key(url: str) -> str:
    """Lowercased URL path without query, fragment or trailing slash."""
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url.split("#", 1)[0].split("?", 1)[0]
    return path.rstrip("/").lower()


def _int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def short_token(value: str) -> str:
    """3-digit djb2-xor token over UTF-16 code units, signed 32-bit arithmetic."""
    raw = value.encode("utf-16-le")
    h = 5381
    for unit in struct.unpack(f"<{len(raw) // 2}H", raw):
        h = _int32(_int32(h << 5) + h) ^ unit
    return f"{abs(h) % 1000:03d}"


def _format_price(price: float) -> str:
    if isinstance(price, float) and price.is_integer():
        return str(int(price))
    return str(price)


def disambiguate(title: str, image_url: str, price: float) -> tuple[str, str]:
    token = short_token(f"{image_key(image_url)}|{_format_price(price)}")
    alt = f"{title} #{token}"
    return alt, normalize_title_for_dedup(alt)


def _is_valid(card: CandidateCard) -> bool:
    if not card.title or not cleanup_title(card.title) or not card.image_url:
        return False
    if isinstance(card.price, bool) or not isinstance(card.price, (int, float)):
        return False
    if not math.isfinite(card.price) or card.price < 0:
        return False
    if card.source is CandidateSource.DOM and card.price <= 0:
        return False
    return True


class CatalogMerger:
    """Incremental merger; pagination feeds it one page of batches at a time."""

    def __init__(self, existing_keys: Iterable[str] = (), cap: int = MAX_CAP) -> None:
        self._existing = frozenset(existing_keys)
        self._cap = max(0, min(cap, MAX_CAP))
        self._taken: set[str] = set(self._existing)
        self._images: set[str] = set()
        self._result = MergeResult()

    @property
    def full(self) -> bool:
        return len(self._result.accepted) >= self._cap

    @property
    def result(self) -> MergeResult:
        return self._result

    def _free_key(self, card: CandidateCard) -> tuple[str, str] | None:
        key = card.title_key or normalize_title_for_dedup(card.title)
        if key not in self._taken:
            return card.title, key
        alt_title, alt_key = disambiguate(card.title, card.image_url, card.price)
        if alt_key not in self._taken:
            return alt_title, alt_key
        for suffix in FALLBACK_SUFFIXES:
            cand_title = f"{card.title} {suffix}"
            cand_key = normalize_title_for_dedup(cand_title)
            if cand_key not in self._taken:
                return cand_title, cand_key
        return None

    def add(self, card: CandidateCard) -> bool:
        stats = self._result.stats
        if self.full:
            return False
        if not _is_valid(card):
            stats.rejected_invalid += 1
            return False
        img = image_key(card.image_url)
        if img and img in self._images:
            stats.image_duplicates += 1
            return False

        free = self._free_key(card)
        if free is None:
            base_key = card.title_key or normalize_title_for_dedup(card.title)
            if base_key in self._existing:
                stats.skip_existing += 1
            else:
                stats.skip_in_run += 1
            return False

        title, key = free
        if title != card.title:
            stats.used_alt += 1
        self._taken.add(key)
        if img:
            self._images.add(img)
        self._result.accepted.append(replace(card, title=title, title_key=key))
        return True

    def add_batch(self, cards: Iterable[CandidateCard]) -> int:
        added = 0
        for card in cards:
            if self.full:
                break
            if self.add(card):
                added += 1
        return added

    def add_batches(self, batches: Mapping[CandidateSource, Iterable[CandidateCard]]) -> None:
        """Add one page worth of batches in source priority order."""
        for source in SOURCE_PRIORITY:
            if self.full:
                return
            self.add_batch(batches.get(source, ()))


def merge(
    batches: Mapping[CandidateSource, Iterable[CandidateCard]],
    existing_keys: Iterable[str] = (),
    cap: int = MAX_CAP,
) -> MergeResult:
    merger = CatalogMerger(existing_keys, cap)
    merger.add_batches(batches)
    return merger.result
