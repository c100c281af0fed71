from __future__ import annotations

import logging

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from uploader.core.config import settings


log = logging.getLogger(__name__)

_ALREADY_EXISTS = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


def get_s3_client(*, endpoint_url: str | None = None):
    ep = (endpoint_url or "").strip() or None
    # For AWS S3, endpoint_url must be None.
    # For S3-compatible providers (MinIO/R2/YC), endpoint_url is required.
    return boto3.client(
        "s3",
        endpoint_url=ep or (str(settings.s3_endpoint_url or "").strip() or None),
        aws_access_key_id=settings.s3_access_key_id,
        aws_secret_access_key=settings.s3_secret_access_key,
        region_name=settings.s3_region_name,
        config=Config(
            signature_version="s3v4",
            connect_timeout=float(settings.s3_connect_timeout_seconds),
            read_timeout=float(settings.s3_read_timeout_seconds),
            retries={
                "max_attempts": int(settings.s3_max_attempts),
                "mode": "standard",
            },
            max_pool_connections=int(settings.s3_max_pool_connections),
            s3={
                "addressing_style": str(settings.s3_addressing_style),
            },
        ),
    )


def _is_already_exists(err: ClientError) -> bool:
    code = str(err.response.get("Error", {}).get("Code") or "")
    status = int(err.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0)
    return code in _ALREADY_EXISTS or status == 409


def ensure_namespace(*, bucket: str, service_id: str, client=None) -> bool:
    """Make sure the upload bucket exists before objects land under `service_id/`.

    "Already exists" counts as success. Any other failure is logged and
    swallowed; a shared bucket is assumed to be usable. Returns True when the
    bucket is known to exist.
    """
    s3 = client or get_s3_client()
    try:
        s3.head_bucket(Bucket=bucket)
        return True
    except (ClientError, BotoCoreError):
        pass

    # AWS requires LocationConstraint for non-us-east-1.
    region = str(settings.s3_region_name or "").strip() or "us-east-1"
    is_aws = not str(settings.s3_endpoint_url or "").strip()
    try:
        if is_aws and region != "us-east-1":
            s3.create_bucket(Bucket=bucket, CreateBucketConfiguration={"LocationConstraint": region})
        else:
            s3.create_bucket(Bucket=bucket)
    except ClientError as e:
        if _is_already_exists(e):
            log.info("bucket %s already exists (namespace %s)", bucket, service_id)
            return True
        log.warning("bucket provisioning failed for %s/%s: %s", bucket, service_id, e)
        return False
    except BotoCoreError as e:
        log.warning("bucket provisioning failed for %s/%s: %s", bucket, service_id, e)
        return False

    log.info("bucket %s created for namespace %s", bucket, service_id)
    return True
