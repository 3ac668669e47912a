# backend/utils/storage.py
import shutil
import uuid
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

from fastapi import Request, UploadFile

from config import settings
from services.errors import ValidationFailed, StockAppError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}
PUBLIC_PREFIX = "/uploads"


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


# Save an uploaded photo and return its opaque reference
def store_photo(file: UploadFile) -> str:
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailed("Invalid file type")

    ext = (file.filename or "photo").rsplit(".", 1)[-1].lower()
    unique_filename = f"{uuid.uuid4()}.{ext}"
    save_path = upload_dir() / unique_filename
    try:
        with open(save_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except OSError as e:
        logger.error("Photo save failed for %s: %s", save_path, e)
        raise StockAppError(f"File save error: {e}")
    finally:
        file.file.close()
    return unique_filename


def remove_photo(reference: Optional[str]) -> None:
    if not reference:
        return
    path = upload_dir() / Path(reference).name
    if path.exists():
        path.unlink()


# Resolve a photo reference to an absolute URL
def photo_url(request: Request, reference: Optional[str]) -> Optional[str]:
    if not reference:
        return None
    return urljoin(str(request.base_url), f"{PUBLIC_PREFIX.lstrip('/')}/{reference}")
