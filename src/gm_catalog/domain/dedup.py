"""Dedup keys for catalog items.

A key identifies "the same listing" for one seller in one game:

    "{scheme}|{game_id}|{seller_id}|{title_key}"

``item`` is the only scheme new rows are written with. Rows created by older
code paths carry ``manual`` (hand-made listings) or ``playerok`` (imports);
those keys are still checked before every insert so a re-import cannot
duplicate them.
"""

from enum import Enum


class KeyScheme(str, Enum):
    ITEM = "item"
    MANUAL = "manual"
    PLAYEROK = "playerok"


CURRENT_SCHEME = KeyScheme.ITEM

# Schemes that collide with a key written under the given scheme
COMPATIBLE_SCHEMES: dict[KeyScheme, tuple[KeyScheme, ...]] = {
    KeyScheme.ITEM: (KeyScheme.MANUAL, KeyScheme.PLAYEROK),
}


def build_key(
    scheme: KeyScheme, game_id: int | str, seller_id: str, title_key: str
) -> str:
    return f"{scheme.value}|{game_id}|{seller_id}|{title_key}"


def legacy_keys(game_id: int | str, seller_id: str, title_key: str) -> list[str]:
    return [
        build_key(scheme, game_id, seller_id, title_key)
        for scheme in COMPATIBLE_SCHEMES[CURRENT_SCHEME]
    ]


def candidate_keys(game_id: int | str, seller_id: str, title_key: str) -> list[str]:
    """Current key first, then every legacy key an insert must not collide with."""
    return [build_key(CURRENT_SCHEME, game_id, seller_id, title_key)] + legacy_keys(
        game_id, seller_id, title_key
    )
