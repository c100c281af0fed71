import io
import sys
import time
from pathlib import Path

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from PIL import Image

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from uploader.core import redis_client as redis_client_module
from uploader.core.config import settings
from uploader.main import create_app


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))


class FakeS3:
    """Records S3 calls. Puts whose object name starts with one of `fail_prefixes` fail."""

    def __init__(self, *, fail_prefixes: tuple[str, ...] = (), bucket_exists: bool = True):
        self.fail_prefixes = fail_prefixes
        self.bucket_exists = bucket_exists
        self.puts: list[dict] = []
        self.calls: list[str] = []

    def head_bucket(self, Bucket):
        self.calls.append("head_bucket")
        if not self.bucket_exists:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")
        return {}

    def create_bucket(self, Bucket, **kwargs):
        self.calls.append("create_bucket")
        self.bucket_exists = True
        return {}

    def put_object(self, **kwargs):
        self.calls.append("put_object")
        name = kwargs["Key"].rsplit("/", 1)[-1]
        if self.fail_prefixes and name.startswith(self.fail_prefixes):
            raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject")
        self.puts.append(kwargs)
        return {"ETag": '"etag"'}

    @property
    def keys(self) -> list[str]:
        return [p["Key"] for p in self.puts]


def image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (1200, 800), mode: str = "RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color=(200, 30, 30) if mode == "RGB" else (200, 30, 30, 128)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def memory_redis(monkeypatch):
    mem = _MemoryRedis()
    monkeypatch.setattr(redis_client_module, "get_redis", lambda: mem)
    return mem


@pytest.fixture()
def upload_root(tmp_path, monkeypatch):
    root = tmp_path / "service"
    monkeypatch.setattr(settings, "local_upload_dir_services", str(root))
    monkeypatch.setattr(settings, "local_upload_enable", True)
    monkeypatch.setattr(settings, "upload_wait_for_remote", True)
    monkeypatch.setattr(settings, "upload_report_outcomes", False)
    return root


@pytest.fixture()
def s3():
    return FakeS3()


@pytest.fixture()
def client(upload_root, s3):
    app = create_app()
    app.state.s3_client = s3
    with TestClient(app) as c:
        yield c
