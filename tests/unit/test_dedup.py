"""Unit tests for dedup key construction."""

from src.gm_catalog.domain.dedup import (
    CURRENT_SCHEME,
    KeyScheme,
    build_key,
    candidate_keys,
    legacy_keys,
)


def test_key_format() -> None:
    assert build_key(KeyScheme.ITEM, 7, "u-1", "dragon sword") == "item|7|u-1|dragon sword"


def test_new_rows_use_item_scheme() -> None:
    assert CURRENT_SCHEME is KeyScheme.ITEM


def test_candidate_keys_current_first_then_legacy() -> None:
    keys = candidate_keys(7, "u-1", "dragon sword")
    assert keys == [
        "item|7|u-1|dragon sword",
        "manual|7|u-1|dragon sword",
        "playerok|7|u-1|dragon sword",
    ]


def test_legacy_keys_exclude_current_scheme() -> None:
    assert all(not k.startswith("item|") for k in legacy_keys(1, "s", "k"))


def test_key_derivation_is_deterministic() -> None:
    assert candidate_keys("3", "s", "k") == candidate_keys(3, "s", "k")
