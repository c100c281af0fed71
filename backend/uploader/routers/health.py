from fastapi import APIRouter, HTTPException, Request

from uploader.core import redis_client
from uploader.core.config import settings
from uploader.services.storage import get_s3_client

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/live")
def live():
    return {"status": "live"}


@router.get("/health/ready")
def ready(request: Request):
    try:
        redis_client.get_redis().ping()
    except Exception as e:
        raise HTTPException(status_code=503, detail="redis not ready") from e

    try:
        s3 = getattr(request.app.state, "s3_client", None) or get_s3_client()
        s3.head_bucket(Bucket=settings.upload_bucket)
    except Exception as e:
        raise HTTPException(status_code=503, detail="s3 not ready") from e

    return {"status": "ready"}
