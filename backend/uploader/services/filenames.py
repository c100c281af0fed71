from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import time

from uploader.core.config import settings
from uploader.schemas.upload import VariantTier
from uploader.services.media_filter import normalize_mime


_MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}

_EXTENSION_RE = re.compile(r"[a-z0-9]+")


def random_token() -> str:
    """64 hex chars: HMAC-SHA256 over a random string plus the current time."""
    seed = secrets.token_hex(16) + str(time.time_ns())
    key = str(settings.filename_hmac_secret or "").encode("utf-8")
    return hmac.new(key, seed.encode("utf-8"), hashlib.sha256).hexdigest()


def file_extension(original_name: str, content_type: str | None = None) -> str:
    name = str(original_name or "").lower().replace(" ", "")
    if "." in name:
        ext = name.rsplit(".", 1)[1]
        # Anything else could leak path or key separators into the stored name.
        if _EXTENSION_RE.fullmatch(ext):
            return ext
    return _MIME_EXTENSIONS.get(normalize_mime(content_type), "")


def random_filename(original_name: str, content_type: str | None = None) -> str:
    token = random_token()
    ext = file_extension(original_name, content_type)
    return f"{token}.{ext}" if ext else token


def tier_filename(tier: VariantTier, base: str) -> str:
    return f"{tier.prefix}{base}"
