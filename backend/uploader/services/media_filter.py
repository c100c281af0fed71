from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from uploader.schemas.upload import UploadedFile


ALLOWED_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})


@dataclass(frozen=True)
class MediaPartition:
    accepted: tuple[UploadedFile, ...]
    ignored: tuple[UploadedFile, ...]


def normalize_mime(content_type: str | None) -> str:
    return str(content_type or "").split(";", 1)[0].strip().lower()


def mime_type_is_allowed(content_type: str | None) -> bool:
    return normalize_mime(content_type) in ALLOWED_MIME_TYPES


def partition_media(files: Iterable[UploadedFile]) -> MediaPartition:
    accepted: list[UploadedFile] = []
    ignored: list[UploadedFile] = []
    for f in files:
        if mime_type_is_allowed(f.content_type):
            accepted.append(f)
        else:
            ignored.append(f)
    return MediaPartition(accepted=tuple(accepted), ignored=tuple(ignored))
