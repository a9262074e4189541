"""Photo storage on the local filesystem.

Item photos live under ``<uploads>/items/`` and are referenced from the
``items.photo_ref`` column by their relative path (``uploads/items/<file>``).
The uploads base directory is the first writable candidate from settings.
"""

import asyncio
import logging
import os
import uuid
from functools import lru_cache
from pathlib import Path

from config.settings import settings
from src.gm_common.errors import InternalError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "uploads"
ITEMS_SUBDIR = "items"

_EXTENSIONS_BY_CONTENT_TYPE = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/avif": ".avif",
}
_KNOWN_EXTENSIONS = frozenset(_EXTENSIONS_BY_CONTENT_TYPE.values()) | {".jpeg"}


def upload_dir_candidates() -> list[Path]:
    """Configured candidates in priority order; empty settings are skipped."""
    candidates: list[Path] = []
    if settings.UPLOADS_DIR:
        candidates.append(Path(settings.UPLOADS_DIR))
    if settings.RENDER_DISK:
        candidates.append(Path(settings.RENDER_DISK) / PUBLIC_PREFIX)
    candidates.append(Path.cwd() / PUBLIC_PREFIX)
    return candidates


def resolve_writable_dir(candidates: list[Path]) -> Path:
    """Return the first candidate that exists (or can be created) and is writable."""
    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Upload dir %s unusable: %s", candidate, exc)
            continue
        if os.access(candidate, os.W_OK):
            return candidate
        logger.warning("Upload dir %s is not writable", candidate)
    raise InternalError("No writable uploads directory")


def extension_for(content_type: str | None, filename: str | None = None) -> str:
    """File extension from the MIME type, then the original filename; '.jpg' otherwise."""
    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime in _EXTENSIONS_BY_CONTENT_TYPE:
            return _EXTENSIONS_BY_CONTENT_TYPE[mime]
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix in _KNOWN_EXTENSIONS:
            return suffix
    return ".jpg"


class PhotoStorage:
    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _items_dir(self) -> Path:
        path = self._base_dir / ITEMS_SUBDIR
        path.mkdir(parents=True, exist_ok=True)
        return path

    def path_for(self, photo_ref: str) -> Path | None:
        """Filesystem path of a stored reference; None for external URLs and refs outside the base."""
        ref = photo_ref.strip().replace("\\", "/").lstrip("./")
        if not ref or "://" in ref or ref.startswith("data:"):
            return None
        parts = ref.split("/")
        if parts[0].lower() == PUBLIC_PREFIX:
            parts = parts[1:]
        path = (self._base_dir / Path(*parts)).resolve() if parts else None
        if path is None or not path.is_relative_to(self._base_dir.resolve()):
            return None
        return path

    async def save_item_photo(self, content: bytes, extension: str) -> str:
        """Write the photo under items/ and return its reference for ``photo_ref``."""
        filename = f"item-{uuid.uuid4().hex}{extension}"
        target = self._items_dir() / filename
        await asyncio.to_thread(target.write_bytes, content)
        return f"{PUBLIC_PREFIX}/{ITEMS_SUBDIR}/{filename}"

    def delete(self, photo_ref: str | None) -> bool:
        """Remove a stored photo. Missing files are not an error."""
        if not photo_ref:
            return False
        path = self.path_for(photo_ref)
        if path is None or not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Photo delete failed for %s: %s", path, exc)
            return False
        return True


@lru_cache(maxsize=1)
def get_photo_storage() -> PhotoStorage:
    base_dir = resolve_writable_dir(upload_dir_candidates())
    logger.info("Uploads directory: %s", base_dir)
    return PhotoStorage(base_dir)
