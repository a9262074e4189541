"""Listing title normalization.

``cleanup_title`` turns a scraped or user-typed title into a display title:
script debris, discount annotations and price tokens are removed. It never
returns an empty string for non-empty input; titles with fewer than two
letters/digits left become ``PLACEHOLDER_TITLE``.

``normalize_title_for_dedup`` derives the per-seller dedup key from a title.
Both functions are pure and deterministic.
"""

import re

PLACEHOLDER_TITLE = "Товар"

# Currency markers. A bare "р"/"руб" only counts when not followed by another
# letter, so words such as "рубин" or "ржавый" survive.
_CURRENCY = r"(?:₽|(?:руб(?:лей|ля)?|р|RUB|RUR)(?![^\W\d_])\.?)"
_NUMBER = r"\d[\d\s.,]{0,9}"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_TRY_CATCH = re.compile(r"try\s*\{.*?\}\s*catch\s*\(.*?\)\s*\{.*?\}", re.I | re.S)
_FUNCTION_BODY = re.compile(r"function\b.{0,600}?\}", re.I | re.S)
_CODE_IDENTIFIERS = re.compile(
    r"\b(document\.cookie|window\.[a-zA-Z_]\w*|setCookie|getCookie|deleteCookie|reloadPage)\b",
    re.I,
)
_CODE_PUNCTUATION = re.compile(r"[{};<>]")
_WHITESPACE = re.compile(r"\s+")

_LEADING_NUMBER = re.compile(
    rf"^(?:от\s*)?{_NUMBER}\s*(?:(?:k|к|тыс\.?)(?![^\W\d_])\s*)*{_CURRENCY}?"
    r"(?=\s|[A-Za-zА-Яа-я]|$)",
    re.I,
)
_PERCENT = re.compile(r"[(\[\-–—\s]*[-+−]?\d{1,3}\s*%[)\]\s]*")
_PROMO_WORDS = re.compile(r"\b(скидк[а-я]*|распродажа|акци[яий]|sale|off)\b", re.I)
_SEPARATORS = re.compile(r"[|/•&]+")
_BRACKETS = re.compile(r"[()\[\]]")
_DASH_RUNS = re.compile(r"[-–—]{2,}")
_PUNCT_RUNS = re.compile(r"[,.;:]{2,}")

_BRACKETED_TAIL_PRICE = re.compile(
    rf"\s*[(\[]?\s*{_NUMBER}\s*{_CURRENCY}\s*[)\]]?\s*$", re.I
)
_DASHED_TAIL_PRICE = re.compile(rf"\s*[-–—]\s*{_NUMBER}\s*{_CURRENCY}\s*$", re.I)
_PRICE_TOKEN = re.compile(
    rf"(?:^|[\s\-–—(\[])(?:от\s*)?{_NUMBER}\s*{_CURRENCY}"
    r"(?=$|[\s)\]\-–—,.:;]|[A-Za-zА-Яа-я])",
    re.I,
)
_ORPHAN_CURRENCY = re.compile(rf"(?:^|[\s\-–—(\[]){_CURRENCY}(?=$|\D)", re.I)
_TRAILING_SEPARATORS = re.compile(r"\s*[-–—,:;]+\s*$")
_LEADING_SEPARATORS = re.compile(r"^[-–—,:;]+\s*")

_CODE_SUFFIXES = re.compile(r"(?:\s*[-–—#№]\s*\d{4,})+$")
_NUMERIC_SUFFIX = re.compile(r"\s+\d{4,}$")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def remove_price_tokens(text: str) -> str:
    """Remove price/currency tokens anywhere in ``text``.

    The global pass repeats until nothing changes: removing one token can
    expose the boundary that the next one needs.
    """
    t = text or ""
    t = _BRACKETED_TAIL_PRICE.sub("", t)
    t = _DASHED_TAIL_PRICE.sub("", t)
    while True:
        stripped = _PRICE_TOKEN.sub(" ", t)
        if stripped == t:
            break
        t = stripped
    t = _ORPHAN_CURRENCY.sub(" ", t)
    t = _TRAILING_SEPARATORS.sub("", t)
    t = _LEADING_SEPARATORS.sub("", t)
    return t


def _alnum_count(text: str) -> int:
    return sum(1 for ch in text if ch.isalnum())


def cleanup_title(raw: str | None) -> str:
    """Display title for a listing. Returns "" only for blank input."""
    t = _CONTROL_CHARS.sub(" ", raw or "")
    t = _TRY_CATCH.sub(" ", t)
    t = _FUNCTION_BODY.sub(" ", t)
    t = _CODE_IDENTIFIERS.sub(" ", t)
    t = _CODE_PUNCTUATION.sub(" ", t)
    t = _collapse(t)
    if not t:
        return ""

    while True:
        stripped = _LEADING_NUMBER.sub(" ", t, count=1).lstrip()
        if stripped == t:
            break
        t = stripped

    t = _PERCENT.sub(" ", t)
    t = _PROMO_WORDS.sub(" ", t)
    t = _SEPARATORS.sub(" ", t)
    t = remove_price_tokens(t)
    t = _collapse(_BRACKETS.sub(" ", t))
    t = _DASH_RUNS.sub("—", t)
    t = _PUNCT_RUNS.sub(lambda m: m.group(0)[0], t)

    if _alnum_count(t) < 2:
        return PLACEHOLDER_TITLE
    return t


def normalize_title_for_dedup(title: str | None) -> str:
    """Lowercased cleaned title without trailing numeric codes. Never empty."""
    t = (cleanup_title(title) or PLACEHOLDER_TITLE).lower()
    t = _CODE_SUFFIXES.sub("", t).strip()
    t = _NUMERIC_SUFFIX.sub("", t).strip()
    t = _collapse(t)
    return t or PLACEHOLDER_TITLE.lower()


def normalize_media_url(url: str | None) -> str:
    """Public URL for a stored media reference.

    Absolute http(s) and data: URLs pass through. Relative paths lose a
    leading "./" or "/", an optional "public/" prefix and backslashes, and the
    "uploads" segment is lowercased.
    """
    s = (url or "").strip()
    if not s:
        return ""
    if re.match(r"^https?://", s, re.I) or s.startswith("data:"):
        return s
    s = re.sub(r"^\.?/+", "", s)
    s = re.sub(r"^public/", "", s, flags=re.I)
    s = s.replace("\\", "/")
    s = re.sub(r"^uploads/", "uploads/", s, flags=re.I)
    return "/" + s
