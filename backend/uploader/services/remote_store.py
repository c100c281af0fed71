from __future__ import annotations

import asyncio
import logging

from uploader.schemas.upload import RemoteResult
from uploader.services.storage import get_s3_client


log = logging.getLogger(__name__)

# Strong references to in-flight uploads; the loop only keeps weak ones.
_background: set[asyncio.Task] = set()


def object_key(service_id: str, filename: str) -> str:
    return f"{service_id.strip('/')}/{filename}"


def persist_remote(data: bytes, *, bucket: str, key: str, content_type: str, client=None) -> RemoteResult:
    """Public-read put of one variant. Failures are logged and returned, never raised."""
    try:
        s3 = client or get_s3_client()
        s3.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ACL="public-read",
        )
    except Exception as e:
        log.warning("remote upload failed for %s/%s: %s", bucket, key, e)
        return RemoteResult(key=key, ok=False, error=str(e))

    log.debug("remote upload ok %s/%s (%s bytes)", bucket, key, len(data))
    return RemoteResult(key=key, ok=True)


def fire_remote(data: bytes, *, bucket: str, key: str, content_type: str, client=None) -> asyncio.Task:
    """Start `persist_remote` in a worker thread without waiting for it."""
    task = asyncio.create_task(
        asyncio.to_thread(persist_remote, data, bucket=bucket, key=key, content_type=content_type, client=client)
    )
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task


async def drain() -> None:
    """Wait for every background upload started by this process."""
    while _background:
        await asyncio.gather(*list(_background), return_exceptions=True)
