"""Content-addressable cache keys for OCR results."""

import hashlib
from datetime import datetime, timezone
from pathlib import Path

from winedoc.utils.logger import get_logger, mask_path

logger = get_logger(__name__)

KEY_PREFIX = "ocr_"


def is_remote(image_ref: str) -> bool:
    """Return whether an image reference points at a remote URL."""
    return image_ref.startswith("http")


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hash_image(image_ref: str) -> str:
    """Hash the content behind an image reference.

    Remote URLs hash the URL string itself. Local files hash their bytes
    together with their modification time, so an image edited in place
    gets a fresh key. If the file cannot be read the reference string is
    hashed instead.

    Args:
        image_ref: Local path or URL of an image.

    Returns:
        Hex-encoded SHA-256 digest.
    """
    if is_remote(image_ref):
        return _sha256(image_ref.encode("utf-8"))

    try:
        path = Path(image_ref)
        content = path.read_bytes()
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError as exc:
        logger.error("Failed to hash image %s: %s", mask_path(image_ref), exc)
        return _sha256(image_ref.encode("utf-8"))

    return _sha256(content + mtime.isoformat().encode("utf-8"))


def compute_cache_key(image_ref: str) -> str:
    """Build the cache key for an image reference.

    Args:
        image_ref: Local path or URL of an image.

    Returns:
        Key of the form ``ocr_<sha256>``.
    """
    return f"{KEY_PREFIX}{hash_image(image_ref)}"
