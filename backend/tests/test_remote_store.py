import asyncio

from botocore.exceptions import ClientError

from conftest import FakeS3
from uploader.services import remote_store
from uploader.services.storage import ensure_namespace


def test_put_is_public_read_with_declared_type():
    s3 = FakeS3()

    res = remote_store.persist_remote(b"img", bucket="b", key="ns/x.png", content_type="image/png", client=s3)

    assert res.ok and res.key == "ns/x.png"
    assert s3.puts == [{"Bucket": "b", "Key": "ns/x.png", "Body": b"img", "ContentType": "image/png", "ACL": "public-read"}]


def test_put_failure_is_reported_not_raised():
    s3 = FakeS3(fail_prefixes=("sm_",))

    res = remote_store.persist_remote(b"img", bucket="b", key="ns/sm_x.png", content_type="image/png", client=s3)

    assert not res.ok
    assert "boom" in res.error
    assert s3.puts == []


def test_object_key_is_namespaced():
    assert remote_store.object_key("id/posts/images", "lg_x.png") == "id/posts/images/lg_x.png"


def test_fire_remote_runs_in_background():
    s3 = FakeS3()

    async def _go():
        task = remote_store.fire_remote(b"a", bucket="b", key="ns/a.png", content_type="image/png", client=s3)
        await remote_store.drain()
        return task.result()

    res = asyncio.run(_go())
    assert res.ok
    assert s3.keys == ["ns/a.png"]


def test_namespace_existing_bucket_is_not_created():
    s3 = FakeS3()
    assert ensure_namespace(bucket="b", service_id="ns", client=s3) is True
    assert s3.calls == ["head_bucket"]


def test_namespace_missing_bucket_is_created():
    s3 = FakeS3(bucket_exists=False)
    assert ensure_namespace(bucket="b", service_id="ns", client=s3) is True
    assert s3.calls == ["head_bucket", "create_bucket"]


class _ConflictS3(FakeS3):
    def __init__(self, code: str, status: int):
        super().__init__(bucket_exists=False)
        self.code = code
        self.status = status

    def create_bucket(self, Bucket, **kwargs):
        raise ClientError(
            {"Error": {"Code": self.code, "Message": "nope"}, "ResponseMetadata": {"HTTPStatusCode": self.status}},
            "CreateBucket",
        )


def test_namespace_already_exists_counts_as_success():
    assert ensure_namespace(bucket="b", service_id="ns", client=_ConflictS3("BucketAlreadyOwnedByYou", 409)) is True
    assert ensure_namespace(bucket="b", service_id="ns", client=_ConflictS3("OperationAborted", 409)) is True


def test_namespace_other_errors_are_warnings_only():
    assert ensure_namespace(bucket="b", service_id="ns", client=_ConflictS3("AccessDenied", 403)) is False
