from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Literal

from pydantic import BaseModel


class VariantTier(str, enum.Enum):
    original = "original"
    large = "large"
    medium = "medium"
    small = "small"

    @property
    def prefix(self) -> str:
        return _TIER_PREFIX[self]

    @property
    def max_dimension(self) -> int | None:
        return _TIER_SIZE[self]


_TIER_PREFIX = {
    VariantTier.original: "",
    VariantTier.large: "lg_",
    VariantTier.medium: "md_",
    VariantTier.small: "sm_",
}

_TIER_SIZE = {
    VariantTier.original: None,
    VariantTier.large: 1000,
    VariantTier.medium: 500,
    VariantTier.small: 200,
}

# Persistence order for one file.
TIER_ORDER: tuple[VariantTier, ...] = (
    VariantTier.original,
    VariantTier.large,
    VariantTier.medium,
    VariantTier.small,
)


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    path: str
    size: int


@dataclass(frozen=True)
class UploadRequest:
    files: tuple[UploadedFile, ...]
    service_id: str


@dataclass
class VariantSet:
    """Rendered buffers per tier. A tier that failed to render is None, never b""."""

    buffers: dict[VariantTier, bytes | None] = field(default_factory=dict)

    def get(self, tier: VariantTier) -> bytes | None:
        return self.buffers.get(tier)

    @property
    def usable(self) -> bool:
        return self.get(VariantTier.original) is not None

    def present(self) -> list[VariantTier]:
        return [t for t in TIER_ORDER if self.get(t) is not None]


Destination = Literal["local", "remote"]


@dataclass(frozen=True)
class StoredArtifact:
    filename: str
    destination: Destination
    location: str


@dataclass(frozen=True)
class RemoteResult:
    key: str
    ok: bool
    error: str | None = None


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    bytesReceived: int
    bytesExpected: int


class FileOutcome(BaseModel):
    source: str
    filename: str | None = None
    skipped: bool = False
    tiers: list[VariantTier] = []
    local: list[str] = []
    remote: list[str] = []
    failed: list[str] = []
    remote_pending: bool = False


class UploadReport(BaseModel):
    ok: bool = True
    message: str
    service_id: str
    ignored: list[str] = []
    files: list[FileOutcome] = []
