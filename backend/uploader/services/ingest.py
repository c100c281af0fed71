from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
import os
import shutil
import tempfile
from typing import AsyncIterator
import uuid

from fastapi import Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException

from uploader.core.errors import UploadError
from uploader.schemas.upload import UploadedFile, UploadRequest
from uploader.services.progress import NullChannel, ProgressSink


log = logging.getLogger(__name__)

FILES_FIELD = "files"


def new_service_id() -> str:
    return f"{uuid.uuid4()}/posts/images"


def _copy_to_disk(src: UploadFile, directory: str, index: int) -> UploadedFile:
    path = os.path.join(directory, f"upload_{index:02d}")
    src.file.seek(0)
    with open(path, "wb") as out:
        shutil.copyfileobj(src.file, out)
    return UploadedFile(
        filename=str(src.filename or ""),
        content_type=str(src.content_type or "application/octet-stream"),
        path=path,
        size=os.path.getsize(path),
    )


@asynccontextmanager
async def ingest_upload(
    request: Request,
    *,
    max_file_size: int,
    max_files: int,
    progress: ProgressSink | None = None,
) -> AsyncIterator[UploadRequest]:
    """Parse a multipart body into an `UploadRequest`.

    Byte progress is reported to `progress` while the body streams in. The total
    body may not exceed `max_file_size * max_files` and at most `max_files`
    entries may be sent in the `files` field; both are request-fatal. Temporary
    copies of the files live until the context exits.
    """
    sink = progress or NullChannel()
    max_total = int(max_file_size) * int(max_files)

    try:
        expected = int(request.headers.get("content-length") or 0)
    except ValueError:
        expected = 0
    if expected > max_total:
        raise UploadError(f"maxFileSize exceeded, received {expected} bytes of {max_total} allowed")

    received = 0

    async def _receive():
        nonlocal received
        message = await request.receive()
        if message.get("type") == "http.request":
            received += len(message.get("body") or b"")
            if received > max_total:
                raise UploadError(f"maxFileSize exceeded, received {received} bytes of {max_total} allowed")
            sink.emit(received, max(expected, received))
        return message

    counted = Request(request.scope, _receive)
    try:
        form = await counted.form()
    except HTTPException as e:
        # Starlette reports malformed multipart bodies as 400s.
        raise UploadError(str(e.detail or "failed to parse upload")) from e

    try:
        uploads = [v for v in form.getlist(FILES_FIELD) if isinstance(v, UploadFile)]
        if not uploads:
            raise UploadError("please select some files to upload")
        if len(uploads) > int(max_files):
            raise UploadError(f"please remove some images, only {int(max_files)} files are allowed to upload")

        with tempfile.TemporaryDirectory(prefix="uploader-") as tmp:
            files = []
            for i, up in enumerate(uploads):
                files.append(await asyncio.to_thread(_copy_to_disk, up, tmp, i))
            log.info("parsed %s file(s), %s bytes", len(files), received)
            yield UploadRequest(files=tuple(files), service_id=new_service_id())
    finally:
        await form.close()
