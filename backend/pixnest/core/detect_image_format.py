"""Image Format Detection: identifies uploads by their bytes, not their names.

Invariants:
    - Returns None for anything Pillow cannot parse as an image
    - Never trusts a filename or client-declared content type

Design Decisions:
    - Pillow over magic-byte tables: also verifies the header structure, so a
      JPEG signature glued onto garbage is rejected
    - verify() runs on a second Image object: Pillow invalidates the image after verify
"""

import io
import logging

from PIL import Image, UnidentifiedImageError

from pixnest.core.domain_types import ImageFormat

logger = logging.getLogger(__name__)

_MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
}


def detect_image_format(data: bytes) -> ImageFormat | None:
    """Sniff the image format of `data`. None when unrecognised or corrupt."""
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        logger.debug(f"Content is not a recognised image: {e}")
        return None
    except (OSError, SyntaxError, ValueError) as e:
        logger.debug(f"Image failed structural verification: {e}")
        return None
    try:
        return ImageFormat(fmt)
    except ValueError:
        return None


def normalize_mime_hint(mime_hint: str | None) -> str | None:
    """Lower-case, strip parameters, fold common aliases."""
    if not mime_hint:
        return None
    base = mime_hint.split(";", 1)[0].strip().lower()
    return _MIME_ALIASES.get(base, base) or None


def hint_matches(mime_hint: str | None, detected: ImageFormat) -> bool:
    """True when no hint was given or the hint agrees with the content."""
    hint = normalize_mime_hint(mime_hint)
    if hint is None or hint == "application/octet-stream":
        return True
    return hint == detected.content_type
