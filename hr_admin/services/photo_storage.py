"""Local-disk storage for employee photos.

``photo_path`` values stored on employees are file names relative to the
configured upload directory.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from pathlib import Path
from typing import BinaryIO

from hr_admin.errors import BadRequestError
from hr_admin.settings import get_settings, get_upload_dir

logger = logging.getLogger("hr_admin.photo_storage")

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
ALLOWED_EXTENSIONS = frozenset({".jpeg", ".jpg", ".png", ".gif", ".webp"})
_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9]")
_CHUNK_SIZE = 64 * 1024


def ensure_upload_dir() -> Path:
    upload_dir = get_upload_dir()
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def resolve_path(photo_path: str) -> Path:
    upload_dir = get_upload_dir().resolve()
    candidate = (upload_dir / photo_path).resolve()
    if candidate != upload_dir and upload_dir not in candidate.parents:
        raise BadRequestError("Invalid photo path", code="INVALID_PHOTO_PATH")
    return candidate


def build_stored_name(original_filename: str) -> str:
    original = Path(original_filename or "photo")
    ext = original.suffix.lower()
    basename = _UNSAFE_NAME_CHARS.sub("_", original.stem) or "photo"
    unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    return f"{basename}-{unique_suffix}{ext}"


def validate_upload(filename: str | None, content_type: str | None) -> None:
    ext = Path(filename or "").suffix.lower()
    if (content_type or "").lower() not in ALLOWED_MIME_TYPES or ext not in ALLOWED_EXTENSIONS:
        raise BadRequestError(
            "Invalid file type. Only JPEG, JPG, PNG, GIF, and WEBP are allowed.",
            code="INVALID_FILE_TYPE",
        )


def save_photo(stream: BinaryIO, *, filename: str | None, content_type: str | None) -> str:
    validate_upload(filename, content_type)
    max_bytes = get_settings().max_upload_bytes
    stored_name = build_stored_name(filename or "photo")
    target = ensure_upload_dir() / stored_name

    written = 0
    try:
        with target.open("wb") as handle:
            while True:
                chunk = stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise BadRequestError(
                        "File size exceeds the maximum allowed limit",
                        {"max_bytes": max_bytes},
                        code="FILE_TOO_LARGE",
                    )
                handle.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise

    logger.info("photo_saved", extra={"photo_path": stored_name, "size_bytes": written})
    return stored_name


def photo_exists(photo_path: str) -> bool:
    return resolve_path(photo_path).is_file()


def delete_photo(photo_path: str) -> None:
    """Remove a stored photo. Raises ``OSError`` when the file cannot be removed."""

    resolve_path(photo_path).unlink()
    logger.info("photo_deleted", extra={"photo_path": photo_path})
