from __future__ import annotations

import os
import re
import secrets
import time
from dataclasses import dataclass

from app.ocl.errors import ValidationError

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_EXTENSIONS = frozenset({".jpeg", ".jpg", ".png", ".gif", ".webp"})
_ALLOWED_MIME = re.compile(r"jpeg|jpg|png|gif|webp")

STORAGE_PREFIX = "news-images"
PUBLIC_URL_PREFIX = "/uploads/news-images"


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename or "")[1].lower()


def validate_image(upload: ImageUpload) -> None:
    if not upload.data:
        raise ValidationError("Image file is empty")
    if len(upload.data) > MAX_IMAGE_BYTES:
        raise ValidationError("Image too large. Maximum size is 5MB.")
    if upload.extension not in ALLOWED_EXTENSIONS or not _ALLOWED_MIME.search((upload.content_type or "").lower()):
        raise ValidationError("Only image files are allowed (jpeg, jpg, png, gif, webp)")


def new_image_key(extension: str) -> str:
    return f"news-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"


def storage_key(image_key: str) -> str:
    return f"{STORAGE_PREFIX}/{image_key}"


def public_url(image_key: str) -> str:
    return f"{PUBLIC_URL_PREFIX}/{image_key}"
