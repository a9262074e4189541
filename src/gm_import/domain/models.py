"""Domain models for gm_import — pure dataclasses, no I/O."""

from dataclasses import dataclass, field
from enum import Enum


class CandidateSource(str, Enum):
    JSON_LD = "json_ld"        # <script type="application/ld+json">
    NEXT_DATA = "next_data"    # <script id="__NEXT_DATA__">
    DOM = "dom"                # heuristic scan of card-like elements


# Merge order: structured data is the most trustworthy
SOURCE_PRIORITY: tuple[CandidateSource, ...] = (
    CandidateSource.JSON_LD,
    CandidateSource.NEXT_DATA,
    CandidateSource.DOM,
)


@dataclass(frozen=True)
class CandidateCard:
    title: str
    title_key: str
    price: float
    image_url: str
    source: CandidateSource


@dataclass
class MergeStats:
    rejected_invalid: int = 0
    image_duplicates: int = 0
    used_alt: int = 0
    skip_existing: int = 0
    skip_in_run: int = 0


@dataclass
class MergeResult:
    accepted: list[CandidateCard] = field(default_factory=list)
    stats: MergeStats = field(default_factory=MergeStats)
