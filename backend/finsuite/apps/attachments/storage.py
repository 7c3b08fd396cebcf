"""Upload directory handling for attachments."""

from __future__ import annotations

import logging
import os
import re
import secrets
import time
from pathlib import Path

from fastapi import HTTPException, UploadFile, status

from finsuite.apps.settings.branding import BASE_DIR

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"
MAX_UPLOAD_BYTES = int(os.getenv("FINSUITE_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


def uploads_dir() -> Path:
    return Path(os.getenv("FINSUITE_DATA_DIR", str(BASE_DIR / "data"))) / "uploads"


def sanitize_name(name: str) -> str:
    return _UNSAFE.sub("_", name or "file")


def url_for(relative_path: str) -> str:
    return f"{URL_PREFIX}/{relative_path}"


def _resolve(relative_path: str) -> Path:
    root = uploads_dir().resolve()
    target = (root / relative_path).resolve()
    if root not in target.parents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid attachment path.")
    return target


def save_upload(file: UploadFile, area: str) -> str:
    """Stream `file` into `<uploads>/<area>/` and return its relative path."""
    folder = uploads_dir() / area
    folder.mkdir(parents=True, exist_ok=True)
    stored_name = f"{int(time.time() * 1000)}_{secrets.token_hex(3)}_{sanitize_name(file.filename)}"
    relative_path = f"{area}/{stored_name}"
    target = _resolve(relative_path)

    total = 0
    with target.open("wb") as out:
        while True:
            chunk = file.file.read(1024 * 1024)
            if not chunk:
                break
            total += len(chunk)
            if MAX_UPLOAD_BYTES and total > MAX_UPLOAD_BYTES:
                out.close()
                target.unlink()
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail="Upload exceeds maximum file size.",
                )
            out.write(chunk)
    return relative_path


def remove_file(relative_path: str) -> None:
    target = _resolve(relative_path)
    if target.exists():
        target.unlink()
    else:
        logger.warning("Attachment file already missing", extra={"path": relative_path})
