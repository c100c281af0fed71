from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import os

from uploader.core.config import Settings, settings as default_settings
from uploader.core.errors import UploadError
from uploader.schemas.upload import (
    TIER_ORDER,
    FileOutcome,
    RemoteResult,
    UploadedFile,
    UploadReport,
    UploadRequest,
)
from uploader.services import local_store, remote_store, storage
from uploader.services.filenames import random_filename, tier_filename
from uploader.services.media_filter import normalize_mime, partition_media
from uploader.services.variants import render_variants_async


log = logging.getLogger(__name__)

SUCCESS_MESSAGE = "all files uploaded"


@dataclass
class _FileRun:
    outcome: FileOutcome
    remote: list[asyncio.Task] = field(default_factory=list)


class UploadOrchestrator:
    """Filter -> render -> local + remote fan-out for one upload request."""

    def __init__(
        self,
        *,
        bucket: str,
        local_enabled: bool,
        local_root: str,
        concurrency: int = 1,
        wait_for_remote: bool = False,
        s3_client=None,
    ):
        self.bucket = bucket
        self.local_enabled = bool(local_enabled)
        self.local_root = local_root
        self.concurrency = max(1, int(concurrency))
        self.wait_for_remote = bool(wait_for_remote)
        self.s3_client = s3_client

    @classmethod
    def from_settings(cls, cfg: Settings | None = None, *, s3_client=None) -> "UploadOrchestrator":
        cfg = cfg or default_settings
        return cls(
            bucket=cfg.upload_bucket,
            local_enabled=cfg.local_upload_enable,
            local_root=cfg.local_upload_dir_services,
            concurrency=cfg.upload_file_concurrency,
            wait_for_remote=cfg.upload_wait_for_remote,
            s3_client=s3_client,
        )

    async def run(self, upload: UploadRequest) -> UploadReport:
        partition = partition_media(upload.files)
        if partition.ignored:
            log.info("some files are ignored: %s", [f.filename for f in partition.ignored])
        if not partition.accepted:
            raise UploadError("invalid files given.")

        client = self.s3_client or await asyncio.to_thread(storage.get_s3_client)
        await asyncio.to_thread(storage.ensure_namespace, bucket=self.bucket, service_id=upload.service_id, client=client)

        if self.local_enabled:
            try:
                local_store.ensure_dir(self.local_root)
            except OSError as e:
                log.warning("cannot create local upload root %s: %s", self.local_root, e)

        log.info("uploading %s files to %s", len(partition.accepted), upload.service_id)

        # Each worker holds all four variants of one file in memory.
        sem = asyncio.Semaphore(self.concurrency)

        async def _bounded(f: UploadedFile) -> _FileRun:
            async with sem:
                return await self._process_file(f, upload.service_id, client)

        runs = await asyncio.gather(*(_bounded(f) for f in partition.accepted))

        for run in runs:
            if not run.remote:
                continue
            if self.wait_for_remote:
                results = await asyncio.gather(*run.remote)
                _apply_remote(run.outcome, results)
            else:
                run.outcome.remote_pending = True

        return UploadReport(
            message=SUCCESS_MESSAGE,
            service_id=upload.service_id,
            ignored=[f.filename for f in partition.ignored],
            files=[r.outcome for r in runs],
        )

    async def _process_file(self, f: UploadedFile, service_id: str, client) -> _FileRun:
        run = _FileRun(outcome=FileOutcome(source=f.filename))
        try:
            variants = await render_variants_async(f.path)
            if not variants.usable:
                log.warning("unsupported file is given to upload: %s", f.filename)
                run.outcome.skipped = True
                return run

            base = random_filename(f.filename, f.content_type)
            run.outcome.filename = base
            run.outcome.tiers = variants.present()
            sub_path = os.path.join(self.local_root, service_id)

            if self.local_enabled:
                for tier in TIER_ORDER:
                    data = variants.get(tier)
                    if data is None:
                        continue
                    name = tier_filename(tier, base)
                    stored = await asyncio.to_thread(
                        local_store.persist_local, data, filename=name, root=self.local_root, sub_path=sub_path
                    )
                    if stored is None:
                        run.outcome.failed.append(f"local:{name}")
                    else:
                        run.outcome.local.append(stored.location)

            content_type = normalize_mime(f.content_type)
            for tier in TIER_ORDER:
                data = variants.get(tier)
                if data is None:
                    continue
                run.remote.append(
                    remote_store.fire_remote(
                        data,
                        bucket=self.bucket,
                        key=remote_store.object_key(service_id, tier_filename(tier, base)),
                        content_type=content_type,
                        client=client,
                    )
                )
        except Exception:
            log.exception("upload processing failed for %s", f.filename)
            run.outcome.failed.append("processing")
        return run


def _apply_remote(outcome: FileOutcome, results: list[RemoteResult]) -> None:
    for res in results:
        if res.ok:
            outcome.remote.append(res.key)
        else:
            outcome.failed.append(f"remote:{res.key}")
