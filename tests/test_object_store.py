"""Tests for the S3 object store wrapper."""

import boto3
import pytest
from botocore.stub import ANY, Stubber

from truthprevails.shared.errors import Unavailable
from truthprevails.storage import S3ObjectStore, StorageError, build_object_store, object_key
from truthprevails.storage import object_store as object_store_module

from conftest import make_settings


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


@pytest.fixture
def store(s3_client):
    return S3ObjectStore(bucket="notary", prefix="tp", client=s3_client, timeout=5.0)


class TestObjectKey:
    def test_layout(self):
        key = object_key("tp/", "user1", "ab" * 32, "up1", "report.pdf")
        assert key == f"tp/users/user1/{'ab' * 32}/up1/report.pdf"

    def test_unsafe_characters_are_replaced(self):
        key = object_key("tp", "u", "h", "up1", "../my photo (1).jpg")
        assert key == "tp/users/u/h/up1/.._my_photo_1_.jpg"
        assert object_key("tp", "u", "h", "up1", "///") == "tp/users/u/h/up1/file"


class TestS3ObjectStore:
    async def test_put(self, store, s3_client, monkeypatch):
        monkeypatch.setattr(object_store_module, "new_upload_id", lambda: "up1")
        key = object_key("tp", "user1", "ab" * 32, "up1", "report.pdf")
        with Stubber(s3_client) as stub:
            stub.add_response(
                "put_object",
                {},
                {
                    "Bucket": "notary",
                    "Key": key,
                    "Body": ANY,
                    "ContentType": "application/pdf",
                    "ServerSideEncryption": "AES256",
                },
            )
            stored = await store.put("user1", "ab" * 32, "report.pdf", b"data", content_type="application/pdf")
            stub.assert_no_pending_responses()

        assert stored.key == key
        assert stored.url == f"s3://notary/{key}"

    async def test_same_bytes_get_distinct_keys(self, store, s3_client):
        expected = {"Bucket": "notary", "Key": ANY, "Body": ANY, "ContentType": ANY, "ServerSideEncryption": "AES256"}
        with Stubber(s3_client) as stub:
            stub.add_response("put_object", {}, expected)
            stub.add_response("put_object", {}, expected)
            first = await store.put("user1", "ab" * 32, "report.pdf", b"data")
            second = await store.put("user1", "ab" * 32, "report.pdf", b"data")

        assert first.key != second.key
        assert first.key.startswith(f"tp/users/user1/{'ab' * 32}/")
        assert second.key.endswith("/report.pdf")

    async def test_client_errors_become_storage_errors(self, store, s3_client):
        with Stubber(s3_client) as stub:
            stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
            with pytest.raises(StorageError):
                await store.delete("tp/users/u/h/f")

    async def test_presigned_url(self, store):
        url = await store.presigned_url("tp/users/u/h/report.pdf", expires_in=600)

        assert "notary" in url
        assert "tp/users/u/h/report.pdf" in url
        assert "Expires=" in url or "X-Amz-Expires=600" in url


class TestBuildObjectStore:
    def test_without_bucket(self):
        store = build_object_store(make_settings())

        assert isinstance(store, Unavailable)
        assert store.reason == "Missing configuration: S3_BUCKET"

    def test_with_bucket(self):
        store = build_object_store(make_settings(s3_bucket="notary", s3_prefix="tp"))

        assert isinstance(store, S3ObjectStore)
        assert store.bucket == "notary"
