"""Tests for the minio and boto3 backends using mocked clients."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from minio.error import S3Error

from certvault.errors import BackendError, ConfigError, NotFoundError
from certvault.storage.minio_backend import MinioObjectBackend
from certvault.storage.s3_backend import Boto3ObjectBackend

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


class FakeS3Error(S3Error):
    """S3Error carrying only a code; avoids depending on the constructor signature."""

    def __init__(self, code):
        Exception.__init__(self, code)
        self._fake_code = code

    code = property(lambda self: self._fake_code)

    def __str__(self):
        return f"S3 operation failed; code: {self._fake_code}"


def _client_error(code, op="GetObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


class TestMinioBackend:
    @pytest.fixture
    def mc(self):
        return MagicMock()

    @pytest.fixture
    def be(self, mc):
        return MinioObjectBackend("play.min.io", "bucket", client=mc)

    def test_requires_endpoint_and_bucket(self):
        with pytest.raises(ConfigError):
            MinioObjectBackend("", "bucket", "ak", "sk")
        with pytest.raises(ConfigError):
            MinioObjectBackend("play.min.io", "", "ak", "sk")

    def test_requires_credentials(self):
        with pytest.raises(ConfigError):
            MinioObjectBackend("play.min.io", "bucket")

    def test_builds_client_without_network(self):
        be = MinioObjectBackend("play.min.io", "bucket", "ak", "sk")
        assert be.bucket == "bucket"

    def test_put(self, be, mc):
        be.put("p/k", b"abc")
        args, kwargs = mc.put_object.call_args
        assert args[:2] == ("bucket", "p/k")
        assert args[2].read() == b"abc"
        assert kwargs["length"] == 3

    def test_get_reads_and_releases(self, be, mc):
        response = MagicMock()
        response.read.return_value = b"payload"
        mc.get_object.return_value = response
        assert be.get("p/k") == b"payload"
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_get_missing(self, be, mc):
        mc.get_object.side_effect = FakeS3Error("NoSuchKey")
        with pytest.raises(NotFoundError):
            be.get("p/k")

    def test_get_access_denied_is_backend_error(self, be, mc):
        mc.get_object.side_effect = FakeS3Error("AccessDenied")
        with pytest.raises(BackendError):
            be.get("p/k")

    def test_delete_missing_is_ok(self, be, mc):
        mc.remove_object.side_effect = FakeS3Error("NoSuchKey")
        be.delete("p/k")

    def test_list_skips_dirs(self, be, mc):
        mc.list_objects.return_value = [
            SimpleNamespace(object_name="p/a", is_dir=False),
            SimpleNamespace(object_name="p/d/", is_dir=True),
            SimpleNamespace(object_name="p/b", is_dir=False),
        ]
        assert list(be.list("p/")) == ["p/a", "p/b"]
        mc.list_objects.assert_called_once_with("bucket", prefix="p/", recursive=True)

    def test_stat(self, be, mc):
        mc.stat_object.return_value = SimpleNamespace(size=12, last_modified=NOW)
        st = be.stat("p/k")
        assert (st.object_key, st.size, st.last_modified) == ("p/k", 12, NOW)

    def test_stat_missing(self, be, mc):
        mc.stat_object.side_effect = FakeS3Error("NoSuchKey")
        with pytest.raises(NotFoundError):
            be.stat("p/k")

    def test_create_bucket(self, mc):
        mc.bucket_exists.return_value = False
        MinioObjectBackend("play.min.io", "bucket", client=mc, create_bucket=True)
        mc.make_bucket.assert_called_once_with("bucket")


class TestBoto3Backend:
    @pytest.fixture
    def s3(self):
        return MagicMock()

    @pytest.fixture
    def be(self, s3):
        return Boto3ObjectBackend("bucket", client=s3)

    def test_requires_bucket(self):
        with pytest.raises(ConfigError):
            Boto3ObjectBackend("")

    def test_requires_both_credentials(self):
        with pytest.raises(ConfigError):
            Boto3ObjectBackend("bucket", access_key="ak")

    def test_put(self, be, s3):
        be.put("p/k", b"abc")
        kwargs = s3.put_object.call_args.kwargs
        assert (kwargs["Bucket"], kwargs["Key"], kwargs["Body"]) == ("bucket", "p/k", b"abc")

    def test_get(self, be, s3):
        body = MagicMock()
        body.read.return_value = b"payload"
        s3.get_object.return_value = {"Body": body}
        assert be.get("p/k") == b"payload"
        body.close.assert_called_once()

    def test_get_closes_body_on_read_error(self, be, s3):
        body = MagicMock()
        body.read.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.com")
        s3.get_object.return_value = {"Body": body}
        with pytest.raises(BackendError):
            be.get("p/k")
        body.close.assert_called_once()

    def test_get_missing(self, be, s3):
        s3.get_object.side_effect = _client_error("NoSuchKey")
        with pytest.raises(NotFoundError):
            be.get("p/k")

    def test_get_connection_error(self, be, s3):
        s3.get_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.com")
        with pytest.raises(BackendError):
            be.get("p/k")

    def test_stat(self, be, s3):
        s3.head_object.return_value = {"ContentLength": 5, "LastModified": NOW}
        st = be.stat("p/k")
        assert st.size == 5 and st.last_modified == NOW

    def test_stat_missing(self, be, s3):
        s3.head_object.side_effect = _client_error("404", "HeadObject")
        with pytest.raises(NotFoundError):
            be.stat("p/k")

    def test_list_paginates(self, be, s3):
        s3.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "p/a"}, {"Key": "p/b"}]},
            {"Contents": [{"Key": "p/c"}]},
            {},
        ]
        assert list(be.list("p/")) == ["p/a", "p/b", "p/c"]

    def test_list_error(self, be, s3):
        s3.get_paginator.return_value.paginate.side_effect = _client_error(
            "AccessDenied", "ListObjectsV2"
        )
        with pytest.raises(BackendError):
            list(be.list("p/"))

    def test_delete(self, be, s3):
        be.delete("p/k")
        s3.delete_object.assert_called_once_with(Bucket="bucket", Key="p/k")

    def test_create_bucket_when_missing(self, s3):
        s3.head_bucket.side_effect = _client_error("404", "HeadBucket")
        Boto3ObjectBackend("bucket", region="eu-west-1", client=s3, create_bucket=True)
        s3.create_bucket.assert_called_once_with(
            Bucket="bucket", CreateBucketConfiguration={"LocationConstraint": "eu-west-1"}
        )
