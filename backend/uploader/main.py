import uuid
import time
import json
import logging
import os
from datetime import datetime, timezone
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from uploader.core.config import settings
from uploader.core.errors import UploadError
from uploader.routers import events, health, uploads
from uploader.services import remote_store

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logging.getLogger("botocore").setLevel(logging.WARNING)

    log_dir = str(settings.log_dir or "").strip()
    if not log_dir:
        return
    root = logging.getLogger()
    path = os.path.abspath(os.path.join(log_dir, "uploader.log"))
    if any(getattr(h, "baseFilename", None) == path for h in root.handlers):
        return
    try:
        handler = logging.FileHandler(path)
    except OSError as e:
        logging.getLogger("uploader").warning("file logging disabled, cannot open %s: %s", path, e)
        return
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def create_app() -> FastAPI:
    _configure_logging()
    app = FastAPI(title="Uploader API", version="1.0.0")

    logger = logging.getLogger("uploader")

    allow_origins = [o.strip() for o in str(settings.cors_allow_origins or "").split(",") if o.strip()]

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = int(getattr(response, "status_code", 0) or 0)
        except Exception:
            status_code = 500
            raise
        finally:
            path = request.url.path
            if not path.startswith("/health") and not path.startswith("/uploads/events/"):
                logger.info(
                    json.dumps(
                        {
                            "ts": datetime.now(timezone.utc).isoformat(),
                            "rid": rid,
                            "method": request.method,
                            "path": path,
                            "status": status_code,
                            "duration_ms": int((time.perf_counter() - t0) * 1000),
                        },
                        ensure_ascii=False,
                    )
                )
        response.headers["X-Request-ID"] = rid
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response

    def _request_id(request: Request) -> str | None:
        rid = getattr(getattr(request, "state", None), "request_id", None)
        rid = str(rid or "").strip()
        return rid or None

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError):
        logger.warning("upload rejected rid=%s: %s", _request_id(request), exc.message)
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        payload = {
            "ok": False,
            "error_code": "rate_limited" if int(exc.status_code) == 429 else "http_error",
            "error_message": str(exc.detail or "request failed"),
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=int(exc.status_code), content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.exception("unhandled exception", extra={"rid": rid})
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error_code": "internal_error",
                "error_message": "internal server error",
                "request_id": rid,
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(uploads.router)
    app.include_router(events.router)

    @app.on_event("shutdown")
    async def _drain_remote_uploads() -> None:
        # Fire-and-forget puts still get to finish on graceful shutdown.
        await remote_store.drain()

    return app

app = create_app()
