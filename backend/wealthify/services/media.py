"""Goal image storage on the local filesystem under ``MEDIA_DIR``."""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MEDIA_DIR = Path(os.getenv("WEALTHIFY_MEDIA_DIR", str(Path(__file__).parent.parent.parent / "media")))

MAX_IMAGE_BYTES = 5 * 1024 * 1024      # 5 MB

# Accepted upload types and their stored extension.  No SVG.
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def save_goal_image(user_id: int, content: bytes, content_type: str) -> str:
    """Write an image and return its path relative to ``MEDIA_DIR``.

    The extension comes from ``content_type`` alone; the client filename is
    never used.  Raises ``ValueError`` for a type outside ``IMAGE_EXTENSIONS``.
    """
    ext = IMAGE_EXTENSIONS.get(content_type)
    if ext is None:
        raise ValueError(f"Unsupported image type: {content_type!r}")
    rel = f"goals/{user_id}/{uuid.uuid4().hex}.{ext}"
    target = MEDIA_DIR / rel
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info("Stored goal image %s (%d bytes)", rel, len(content))
    return rel


def delete_media(rel_path: Optional[str]) -> None:
    """Remove a stored file. A file that is already gone is only logged."""
    if not rel_path:
        return
    try:
        (MEDIA_DIR / rel_path).unlink()
    except FileNotFoundError:
        logger.warning("Media file %s was already missing", rel_path)
