"""Candidate extraction from a marketplace listing page.

Three independent extractors read the same parsed document:

* ``extract_json_ld``   — schema.org ItemList / ListItem / Product nodes
* ``extract_next_data`` — product-like objects inside the ``__NEXT_DATA__`` app state
* ``iter_dom_cards``    — heuristic scan of card-like elements; lazy, so the
  merger stops the scan once it is full

Titles are cleaned with ``cleanup_title`` and prices rounded half-up to whole
roubles. Relative URLs are resolved against the page URL.
"""

import json
import logging
import math
import re
from collections.abc import Iterator
from typing import Any
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from src.gm_catalog.domain.title import cleanup_title, normalize_title_for_dedup
from src.gm_import.domain.models import CandidateCard, CandidateSource

logger = logging.getLogger(__name__)

NEXT_DATA_MAX_DEPTH = 6

_CARD_SELECTOR = "a, div, li, article, section, main"
_TITLE_NODE_SELECTOR = (
    '[data-qa*="title"],[data-testid*="title"],[data-test*="title"],'
    '[data-name],[data-title],[itemprop="name"]'
)
_HEADING_SELECTOR = (
    'h1,h2,h3,h4,h5,[class*="title"],[class*="name"],[class*="caption"],'
    '[class*="card"],[class*="MuiTypography"],a,span,p'
)
_PARENT_TITLE_SELECTOR = 'h1,h2,h3,h4,h5,[class*="title"],[class*="name"],[itemprop="name"],a'
_PRICE_SELECTOR = (
    '[class*="price"],[data-qa*="price"],[data-testid*="price"],'
    '[data-test*="price"],[itemprop="price"]'
)
_DATA_IMAGE_SELECTOR = (
    "[data-bg],[data-background],[data-background-image],[data-original],"
    '[data-src],[data-lazy],[data-image],[data-img],[data-thumbnail],[itemprop="image"]'
)
_DATA_IMAGE_ATTRS = (
    "data-bg",
    "data-background",
    "data-background-image",
    "data-original",
    "data-src",
    "data-lazy",
    "data-image",
    "data-img",
    "data-thumbnail",
    "content",
)
_NEXT_LINK_SELECTOR = (
    'a[aria-label*="след"],a[aria-label*="След"],a[aria-label*="next"],'
    'a[title*="След"],a[title*="Next"],a[class*="next"]'
)

_WS = re.compile(r"\s+")
_PRICE_NUMBER = re.compile(r"(-?[0-9]+(?:\.[0-9]+)?)")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_PRICE_WITH_CURRENCY = re.compile(r"([0-9\s .,]+)\s*(₽|руб|RUB|\$|USD|€|EUR|грн|₴)", re.I)
_NUMERIC_RUN = re.compile(r"\d[\d\s .,]*")
_LONG_NUMBER = re.compile(r"(?:^|[^0-9])([0-9][0-9\s .,]{3,})(?![0-9])")
_BACKGROUND_URL = re.compile(r"""url\((['"]?)([^)"']+)\1\)""", re.I)
_HAS_LETTER = re.compile(r"[A-Za-zА-Яа-я]")
_FILE_EXTENSION = re.compile(r"\.[a-z0-9]+$", re.I)


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_price(value: Any) -> int | None:
    """Whole-rouble price from a number or a price string; None if there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return round_half_up(value) if math.isfinite(value) else None
    s = re.sub(r"[ \s]", "", str(value)).replace("−", "-").replace(",", ".", 1)
    m = _PRICE_NUMBER.search(s)
    if not m:
        return None
    return round_half_up(float(m.group(1)))


def _parse_price_text(text: str) -> int | None:
    m = _NUMERIC_RUN.search(text)
    if not m:
        return None
    digits = re.sub(r"[\s ,]+", "", m.group(0))
    prefix = _FLOAT_PREFIX.match(digits)
    if not prefix:
        return None
    return round_half_up(float(prefix.group(0)))


def absolute_url(url: str, base_url: str | None) -> str:
    url = (url or "").strip()
    if not url:
        return ""
    if not base_url:
        return url
    try:
        return urljoin(base_url, url)
    except ValueError:
        return url


def _collapse(text: str) -> str:
    return _WS.sub(" ", text).strip()


def _text(el: Tag | None) -> str:
    return _collapse(el.get_text()) if el is not None else ""


def _attr(el: Tag | None, name: str) -> str:
    if el is None:
        return ""
    value = el.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _first_srcset_url(srcset: str) -> str:
    return srcset.split(",")[0].strip().split(" ")[0] if srcset else ""


def _first_image(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("url") or value.get("contentUrl")
    return value if isinstance(value, str) else ""


def raw_card(
    name: Any, price: Any, image: Any, base_url: str | None, source: CandidateSource
) -> CandidateCard:
    """Candidate exactly as scraped; the merger decides whether it is usable.

    A missing title or image becomes "", an unparsable price becomes NaN.
    """
    title = cleanup_title(name) if isinstance(name, str) else ""
    parsed_price = normalize_price(price)
    return CandidateCard(
        title=title,
        title_key=normalize_title_for_dedup(title) if title else "",
        price=math.nan if parsed_price is None else parsed_price,
        image_url=absolute_url(_first_image(image), base_url),
        source=source,
    )


def make_card(
    name: Any, price: Any, image: Any, base_url: str | None, source: CandidateSource
) -> CandidateCard | None:
    """raw_card, or None when the node has no title, price or image at all."""
    card = raw_card(name, price, image, base_url, source)
    if not card.title or math.isnan(card.price) or not card.image_url:
        return None
    return card


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------


def _offer_price(offers: Any) -> Any:
    if isinstance(offers, list):
        for offer in offers:
            if isinstance(offer, dict):
                price = offer.get("price") or offer.get("lowPrice") or offer.get("highPrice")
                if price:
                    return price
        return None
    if isinstance(offers, dict):
        return offers.get("price") or offers.get("lowPrice") or offers.get("highPrice")
    return None


def _walk_json_ld(node: Any, base_url: str | None, out: list[CandidateCard]) -> None:
    if not isinstance(node, dict):
        return
    node_type = node.get("@type")
    if node_type in ("ItemList", "CollectionPage", "SearchResultsPage"):
        elements = node.get("itemListElement")
        for element in elements if isinstance(elements, list) else [elements]:
            if isinstance(element, dict):
                _walk_json_ld(element.get("item") or element, base_url, out)
    elif node_type == "ListItem":
        _walk_json_ld(node.get("item"), base_url, out)
    elif node_type == "Product" or node.get("name") or node.get("image") or node.get("offers"):
        args = (
            node.get("name") or node.get("title"),
            _offer_price(node.get("offers")),
            node.get("image") or node.get("photo") or node.get("thumbnailUrl"),
            base_url,
            CandidateSource.JSON_LD,
        )
        # Products and offers are counted by the merger even when unusable
        if node_type == "Product" or node.get("offers"):
            out.append(raw_card(*args))
            return
        card = make_card(*args)
        if card is not None:
            out.append(card)


def extract_json_ld(soup: BeautifulSoup, base_url: str | None) -> list[CandidateCard]:
    cards: list[CandidateCard] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.get_text().strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Skipping malformed JSON-LD block")
            continue
        for node in data if isinstance(data, list) else [data]:
            _walk_json_ld(node, base_url, cards)
    return cards


# ---------------------------------------------------------------------------
# __NEXT_DATA__
# ---------------------------------------------------------------------------


def _object_image(obj: dict[str, Any]) -> Any:
    image = (
        obj.get("image")
        or obj.get("img")
        or obj.get("photo")
        or obj.get("imageUrl")
        or obj.get("thumbnailUrl")
        or obj.get("cover")
    )
    if image:
        return image
    images = obj.get("images")
    if isinstance(images, list) and images:
        first = images[0]
        return (first.get("url") if isinstance(first, dict) else None) or first
    if isinstance(images, dict):
        return images.get("url")
    return None


def _object_price(obj: dict[str, Any]) -> Any:
    price = (
        obj.get("price")
        or obj.get("cost")
        or obj.get("amount")
        or obj.get("priceValue")
        or obj.get("lowPrice")
        or obj.get("highPrice")
    )
    if price:
        return price
    offer = obj.get("offer")
    if isinstance(offer, dict):
        price = offer.get("price") or offer.get("amount") or offer.get("value")
        if price:
            return price
    prices = obj.get("prices")
    if isinstance(prices, list) and prices:
        first = prices[0]
        return (first.get("price") if isinstance(first, dict) else None) or first
    return price


def collect_from_state(
    obj: Any,
    base_url: str | None,
    out: list[CandidateCard],
    limit: int,
    depth: int = 0,
) -> None:
    """Depth-limited walk collecting every object that looks like a priced product."""
    if not isinstance(obj, (dict, list)) or depth > NEXT_DATA_MAX_DEPTH or len(out) >= limit:
        return
    if isinstance(obj, list):
        for value in obj:
            collect_from_state(value, base_url, out, limit, depth + 1)
        return

    label = (
        obj.get("name")
        or obj.get("title")
        or obj.get("name_ru")
        or obj.get("name_en")
        or obj.get("label")
    )
    image = _object_image(obj)
    price = _object_price(obj)
    if label and image and price is not None:
        out.append(raw_card(label, price, image, base_url, CandidateSource.NEXT_DATA))
    for value in obj.values():
        collect_from_state(value, base_url, out, limit, depth + 1)


def extract_next_data(
    soup: BeautifulSoup, base_url: str | None, limit: int
) -> list[CandidateCard]:
    cards: list[CandidateCard] = []
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None:
        return cards
    raw = script.get_text().strip()
    if not raw:
        return cards
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug("Skipping malformed __NEXT_DATA__ block")
        return cards
    collect_from_state(data, base_url, cards, limit)
    return cards


# ---------------------------------------------------------------------------
# DOM heuristics
# ---------------------------------------------------------------------------


def _title_candidate(el: Tag, img: Tag | None) -> str:
    title = _attr(img, "alt") or _attr(el, "aria-label") or _attr(el, "title")
    if not title:
        title = _attr(el.select_one("[title]"), "title")
    if not title:
        node = el.select_one(_TITLE_NODE_SELECTOR)
        title = _attr(node, "content") or _text(node)
    if not title:
        title = _text(el.select_one(_HEADING_SELECTOR))
    return _collapse(title)


def _filename_title(image_url: str) -> str:
    try:
        segments = [s for s in urlsplit(image_url).path.split("/") if s]
    except ValueError:
        return ""
    if not segments:
        return ""
    base = re.sub(r"[-_]+", " ", _FILE_EXTENSION.sub("", segments[-1])).strip()
    return cleanup_title(base)


def find_nearby_title(el: Tag, text: str, price_text: str, image_url: str) -> str:
    """Title from the element itself, up to 3 ancestors, siblings, own text, then image filename."""
    cand = _attr(el, "aria-label") or _attr(el, "title") or _attr(el.select_one("[title]"), "title")
    if not cand:
        node = el.select_one(_TITLE_NODE_SELECTOR)
        cand = _attr(node, "content") or _text(node)
    cand = cleanup_title(cand)
    if cand:
        return cand

    parent = el.parent
    for _ in range(3):
        if not isinstance(parent, Tag):
            break
        cand = (
            _text(parent.select_one(_PARENT_TITLE_SELECTOR))
            or _attr(parent, "aria-label")
            or _attr(parent, "title")
        )
        cand = cleanup_title(cand)
        if cand:
            return cand
        parent = parent.parent

    sibling = cleanup_title(_text(el.find_previous_sibling())) or cleanup_title(
        _text(el.find_next_sibling())
    )
    if sibling:
        return sibling

    if text:
        own = text.replace(price_text, " ") if price_text else text
        own = cleanup_title(own)
        if own and _HAS_LETTER.search(own):
            return own

    return _filename_title(image_url) if image_url else ""


def _price_text(el: Tag, text: str) -> str:
    node = el.select_one(_PRICE_SELECTOR)
    if node is not None:
        found = _text(node) or _attr(node, "content") or _attr(node, "value")
        if found:
            return found
    found = _attr(el, "data-price") or _attr(el, "data-amount") or _attr(el, "data-cost")
    if found:
        return found
    m = _PRICE_WITH_CURRENCY.search(text)
    return m.group(1) if m else ""


def _dom_price(price_text: str, text: str) -> int:
    if price_text:
        return _parse_price_text(price_text) or 0
    m = _LONG_NUMBER.search(text)
    if m:
        return _parse_price_text(m.group(1)) or 0
    return 0


def _image_src(el: Tag, img: Tag | None) -> str:
    src = ""
    if img is not None:
        src = _attr(img, "src") or _attr(img, "data-src") or _attr(img, "data-lazy")
        if not src:
            src = _first_srcset_url(_attr(img, "srcset") or _attr(img, "data-srcset"))
    if not src:
        source = el.select_one("source[srcset], source[data-srcset]")
        src = _first_srcset_url(_attr(source, "srcset") or _attr(source, "data-srcset"))
    if not src:
        style = _attr(el.select_one("[style*=background]"), "style")
        if not style:
            own_style = _attr(el, "style")
            if "background" in own_style.lower():
                style = own_style
        m = _BACKGROUND_URL.search(style) if style else None
        if m:
            src = m.group(2).strip()
    if not src:
        node = el.select_one(_DATA_IMAGE_SELECTOR)
        for name in _DATA_IMAGE_ATTRS:
            src = _attr(node, name)
            if src:
                break
    return src


def dom_card(el: Tag, base_url: str | None) -> CandidateCard | None:
    """Card for one element, or None when it lacks a title, a positive price or an image."""
    text = _text(el)
    img = el.find("img")
    title = _title_candidate(el, img if isinstance(img, Tag) else None)
    price_text = _price_text(el, text)
    price = _dom_price(price_text, text)
    src = absolute_url(_image_src(el, img if isinstance(img, Tag) else None), base_url)

    if not title or len(cleanup_title(title)) < 4:
        title = find_nearby_title(el, text, price_text, src) or title

    clean = cleanup_title(title)
    if not clean or price <= 0 or not src:
        return None
    return CandidateCard(
        title=clean,
        title_key=normalize_title_for_dedup(clean),
        price=price,
        image_url=src,
        source=CandidateSource.DOM,
    )


def iter_dom_cards(soup: BeautifulSoup, base_url: str | None) -> Iterator[CandidateCard]:
    for el in soup.select(_CARD_SELECTOR):
        card = dom_card(el, base_url)
        if card is not None:
            yield card


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def find_next_url(soup: BeautifulSoup, base_url: str | None) -> str | None:
    href = (
        _attr(soup.select_one('link[rel~="next"]'), "href")
        or _attr(soup.select_one('a[rel~="next"]'), "href")
        or _attr(soup.select_one(_NEXT_LINK_SELECTOR), "href")
    )
    if not href:
        return None
    return absolute_url(href, base_url) or None
