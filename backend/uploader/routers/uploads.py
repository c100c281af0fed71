from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from uploader.core.config import settings
from uploader.core.rate_limit import rate_limit
from uploader.services.ingest import ingest_upload
from uploader.services.orchestrator import UploadOrchestrator
from uploader.services.progress import hub


log = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _session_id(request: Request) -> str | None:
    sid = request.query_params.get("session_id") or request.headers.get("x-upload-session")
    return str(sid or "").strip() or None


@router.post("/v2")
async def upload_images(
    request: Request,
    _: object = rate_limit(key_prefix="uploads_v2", limit=settings.upload_rate_limit_per_minute, window_seconds=60),
):
    """Accept a multipart `files` field and fan every image out to disk and S3.

    Request-fatal errors raise `UploadError` and come back as plain-text 500s.
    """
    progress = hub.channel(_session_id(request))
    orchestrator = UploadOrchestrator.from_settings(settings, s3_client=getattr(request.app.state, "s3_client", None))

    async with ingest_upload(
        request,
        max_file_size=settings.upload_max_file_size,
        max_files=settings.upload_max_files,
        progress=progress,
    ) as upload:
        report = await orchestrator.run(upload)

    if settings.upload_report_outcomes:
        return JSONResponse(content=report.model_dump(mode="json"))
    return PlainTextResponse(report.message)
