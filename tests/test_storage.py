import io

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from thumbnailer.errors import AccessDenied, ObjectNotFound, PayloadTooLarge, StorageError
from thumbnailer.storage import LocalObjectStore, S3ObjectStore, StoredObject

BUCKET = "originals"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubbed(s3_client):
    with Stubber(s3_client) as stubber:
        yield S3ObjectStore(BUCKET, client=s3_client), stubber
        stubber.assert_no_pending_responses()


def test_get_object_returns_length_and_body(stubbed):
    store, stubber = stubbed
    payload = b"\x89PNG fake"
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(payload), len(payload)), "ContentLength": len(payload)},
        {"Bucket": BUCKET, "Key": "cats/a.png"},
    )

    stored = store.get_object("cats/a.png")

    assert stored.content_length == len(payload)
    assert stored.read(1024) == payload


@pytest.mark.parametrize("code,status,expected", [
    ("NoSuchKey", 404, ObjectNotFound),
    ("NotFound", 404, ObjectNotFound),
    ("AccessDenied", 403, AccessDenied),
    ("InternalError", 500, StorageError),
    ("SlowDown", 503, StorageError),
])
def test_client_errors_are_translated(stubbed, code, status, expected):
    store, stubber = stubbed
    stubber.add_client_error(
        "get_object",
        service_error_code=code,
        service_message=code,
        http_status_code=status,
        expected_params={"Bucket": BUCKET, "Key": "k.png"},
    )

    with pytest.raises(expected):
        store.get_object("k.png")


def test_status_code_alone_identifies_missing_keys(stubbed):
    store, stubber = stubbed
    stubber.add_client_error("get_object", service_error_code="", http_status_code=404)

    with pytest.raises(ObjectNotFound):
        store.get_object("k.png")


def test_stored_object_read_is_capped():
    stored = StoredObject(io.BytesIO(b"x" * 11), 11)
    with pytest.raises(PayloadTooLarge):
        stored.read(10)


def test_stored_object_read_at_limit():
    assert StoredObject(io.BytesIO(b"x" * 10), 10).read(10) == b"x" * 10


def test_local_store_reads_files(tmp_path):
    (tmp_path / "cats").mkdir()
    (tmp_path / "cats" / "a.png").write_bytes(b"abc")

    stored = LocalObjectStore(str(tmp_path)).get_object("cats/a.png")
    try:
        assert stored.content_length == 3
        assert stored.read(100) == b"abc"
    finally:
        stored.close()


@pytest.mark.parametrize("key", ["missing.png", "cats", "../outside.png"])
def test_local_store_missing_and_escaping_keys(tmp_path, key):
    root = tmp_path / "root"
    (root / "cats").mkdir(parents=True)
    (tmp_path / "outside.png").write_bytes(b"secret")

    with pytest.raises(ObjectNotFound):
        LocalObjectStore(str(root)).get_object(key)
