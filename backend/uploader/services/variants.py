from __future__ import annotations

import asyncio
import io
import logging
import pathlib

from PIL import Image

from uploader.schemas.upload import TIER_ORDER, VariantSet, VariantTier


log = logging.getLogger(__name__)

_RENDER_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)

# Formats that cannot carry an alpha channel or palette.
_RGB_ONLY = {"JPEG"}


def _encode(img: Image.Image, fmt: str) -> bytes:
    if fmt in _RGB_ONLY and img.mode not in {"RGB", "L", "CMYK"}:
        img = img.convert("RGB")
    buf = io.BytesIO()
    if fmt == "JPEG":
        img.save(buf, format=fmt, quality=90)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


def render_tier(data: bytes, tier: VariantTier) -> bytes | None:
    """Render one tier from raw image bytes.

    `original` is re-encoded as is; the other tiers are scaled so their largest
    dimension equals the tier size, keeping the aspect ratio. Images already
    smaller than the tier are not enlarged. Returns None when the source can't
    be decoded or encoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = str(img.format or "PNG").upper()
            img.load()
            size = tier.max_dimension
            if size is not None:
                img.thumbnail((size, size), Image.Resampling.LANCZOS)
            return _encode(img, fmt)
    except _RENDER_ERRORS as e:
        log.warning("render %s failed: %s", tier.value, e)
        return None


def render_variants(data: bytes) -> VariantSet:
    return VariantSet(buffers={tier: render_tier(data, tier) for tier in TIER_ORDER})


async def render_variants_async(source: str | pathlib.Path | bytes) -> VariantSet:
    """Render all four tiers concurrently in worker threads and join them."""
    if isinstance(source, bytes):
        data = source
    else:
        try:
            data = await asyncio.to_thread(pathlib.Path(source).read_bytes)
        except OSError as e:
            log.warning("cannot read upload source %s: %s", source, e)
            return VariantSet(buffers={tier: None for tier in TIER_ORDER})

    rendered = await asyncio.gather(*(asyncio.to_thread(render_tier, data, tier) for tier in TIER_ORDER))
    return VariantSet(buffers=dict(zip(TIER_ORDER, rendered)))
