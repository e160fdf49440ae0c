import io
import os
import stat
from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from seminars.shared.errors import ObjectNotFound, StorageFailure
from seminars.shared.storage import (
    LocalObjectStore,
    S3ObjectStore,
    VISIBILITY_PUBLIC,
    build_object_store,
)

KEY = "certificates/2024/data-pipelines/abc.pdf"


@pytest.fixture
def local_store(tmp_path):
    return LocalObjectStore(str(tmp_path), "secret")


def test_local_put_get_exists(local_store, tmp_path):
    assert not local_store.exists(KEY)
    local_store.put(KEY, b"%PDF")
    assert local_store.exists(KEY)
    assert local_store.get(KEY) == b"%PDF"
    mode = stat.S_IMODE(os.stat(tmp_path / KEY).st_mode)
    assert mode == 0o600


def test_local_public_visibility(local_store, tmp_path):
    local_store.put(KEY, b"x", VISIBILITY_PUBLIC)
    assert stat.S_IMODE(os.stat(tmp_path / KEY).st_mode) == 0o644


def test_local_put_overwrites(local_store):
    local_store.put(KEY, b"one")
    local_store.put(KEY, b"two")
    assert local_store.get(KEY) == b"two"


def test_local_get_missing(local_store):
    with pytest.raises(ObjectNotFound):
        local_store.get(KEY)


def test_local_rejects_traversal(local_store):
    with pytest.raises(StorageFailure):
        local_store.put("../outside.pdf", b"x")


def test_local_rejects_unknown_visibility(local_store):
    with pytest.raises(ValueError):
        local_store.put(KEY, b"x", "secret")


def test_local_signed_url_round_trip(local_store):
    url = local_store.signed_url(KEY, 300)
    parsed = urlparse(url)
    assert parsed.path == f"/certificate-files/{KEY}"
    token = parse_qs(parsed.query)["token"][0]
    assert local_store.verify_token(KEY, token)
    assert not local_store.verify_token("certificates/other.pdf", token)
    assert not local_store.verify_token(KEY, token + "x")
    assert not local_store.verify_token(KEY, None)


def test_local_signed_url_expires(local_store):
    url = local_store.signed_url(KEY, -1)
    token = parse_qs(urlparse(url).query)["token"][0]
    assert not local_store.verify_token(KEY, token)


def _s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_s3_put_uses_acl_and_content_type():
    client = _s3_client()
    store = S3ObjectStore("certs", client)
    with Stubber(client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": "certs",
                "Key": KEY,
                "Body": b"%PDF",
                "ACL": "private",
                "ContentType": "application/pdf",
            },
        )
        store.put(KEY, b"%PDF")
        stubber.assert_no_pending_responses()


def test_s3_exists_handles_404():
    client = _s3_client()
    store = S3ObjectStore("certs", client)
    with Stubber(client) as stubber:
        stubber.add_response("head_object", {"ContentLength": 4}, {"Bucket": "certs", "Key": KEY})
        stubber.add_client_error(
            "head_object", service_error_code="404", http_status_code=404
        )
        assert store.exists(KEY) is True
        assert store.exists(KEY) is False


def test_s3_exists_wraps_other_errors():
    client = _s3_client()
    store = S3ObjectStore("certs", client)
    with Stubber(client) as stubber:
        stubber.add_client_error(
            "head_object", service_error_code="AccessDenied", http_status_code=403
        )
        with pytest.raises(StorageFailure):
            store.exists(KEY)


def test_s3_get_reads_body_and_maps_missing():
    client = _s3_client()
    store = S3ObjectStore("certs", client)
    with Stubber(client) as stubber:
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(b"%PDF"), 4)},
            {"Bucket": "certs", "Key": KEY},
        )
        stubber.add_client_error(
            "get_object", service_error_code="NoSuchKey", http_status_code=404
        )
        assert store.get(KEY) == b"%PDF"
        with pytest.raises(ObjectNotFound):
            store.get(KEY)


def test_s3_signed_url_is_presigned():
    store = S3ObjectStore("certs", _s3_client())
    url = store.signed_url(KEY, 300)
    assert "certs" in url
    assert KEY in url
    assert "Expires" in url


def test_build_object_store_selects_backend():
    local = build_object_store(
        {"CERTIFICATE_STORAGE": "local", "SITE_ROOT": "/tmp", "SECRET_KEY": "k"}
    )
    assert isinstance(local, LocalObjectStore)
    with pytest.raises(ValueError):
        build_object_store({"CERTIFICATE_STORAGE": "s3"})
    with pytest.raises(ValueError):
        build_object_store({"CERTIFICATE_STORAGE": "ftp"})
