"""Durable object storage for certificate artifacts.

Two backends share one small interface (``exists``/``get``/``put``/
``signed_url``): a local directory under ``SITE_ROOT`` for single-host
deployments and development, and S3 (or any S3-compatible endpoint) through
boto3.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import tempfile
import time
from typing import Protocol
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from itsdangerous import BadSignature, URLSafeTimedSerializer

from .errors import ObjectNotFound, StorageFailure

logger = logging.getLogger("seminars.certificates")

VISIBILITY_PRIVATE = "private"
VISIBILITY_PUBLIC = "public"
_VISIBILITIES = {VISIBILITY_PRIVATE, VISIBILITY_PUBLIC}

_FILE_MODES = {VISIBILITY_PRIVATE: 0o600, VISIBILITY_PUBLIC: 0o644}
_S3_ACLS = {VISIBILITY_PRIVATE: "private", VISIBILITY_PUBLIC: "public-read"}


class ObjectStore(Protocol):
    def exists(self, key: str) -> bool: ...

    def get(self, key: str) -> bytes: ...

    def put(self, key: str, data: bytes, visibility: str = VISIBILITY_PRIVATE) -> None: ...

    def signed_url(self, key: str, ttl_seconds: int) -> str: ...


def _check_visibility(visibility: str) -> str:
    if visibility not in _VISIBILITIES:
        raise ValueError(f"Unsupported visibility: {visibility!r}")
    return visibility


def ensure_dir(path: str) -> None:
    """Create directory if missing (mkdir -p equivalent)."""
    os.makedirs(path, exist_ok=True)


def write_atomic(path: str, data: bytes) -> None:
    """Write data to a temporary file then atomically rename to target path."""
    dir_path = os.path.dirname(path)
    ensure_dir(dir_path)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


class LocalObjectStore:
    """Objects as files below ``root``; signed URLs point at the download route."""

    url_prefix = "/certificate-files"

    def __init__(self, root: str, secret_key: str) -> None:
        self.root = os.path.realpath(root)
        self._serializer = URLSafeTimedSerializer(secret_key, salt="certificate-files")

    def _path(self, key: str) -> str:
        raw = (key or "").strip().lstrip("/")
        resolved = os.path.realpath(os.path.join(self.root, raw))
        if not raw or not resolved.startswith(f"{self.root}{os.sep}"):
            raise StorageFailure(f"Invalid object key: {key!r}")
        return resolved

    def path_for(self, key: str) -> str:
        return self._path(key)

    def exists(self, key: str) -> bool:
        return os.path.isfile(self._path(key))

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            with open(path, "rb") as handle:
                return handle.read()
        except FileNotFoundError as exc:
            raise ObjectNotFound(key) from exc
        except OSError as exc:
            raise StorageFailure(f"read failed for {key}: {exc}") from exc

    def put(self, key: str, data: bytes, visibility: str = VISIBILITY_PRIVATE) -> None:
        mode = _FILE_MODES[_check_visibility(visibility)]
        path = self._path(key)
        try:
            write_atomic(path, data)
            os.chmod(path, mode)
        except OSError as exc:
            raise StorageFailure(f"write failed for {key}: {exc}") from exc
        logger.info("[STORE] wrote key=%s bytes=%d visibility=%s", key, len(data), visibility)

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        self._path(key)
        token = self._serializer.dumps({"k": key, "ttl": int(ttl_seconds)})
        return f"{self.url_prefix}/{quote(key)}?token={token}"

    def verify_token(self, key: str, token: str | None) -> bool:
        if not token:
            return False
        try:
            payload, signed_at = self._serializer.loads(token, return_timestamp=True)
        except BadSignature:
            return False
        if not isinstance(payload, dict) or payload.get("k") != key:
            return False
        age = time.time() - signed_at.timestamp()
        return age <= int(payload.get("ttl", 0))


class S3ObjectStore:
    def __init__(self, bucket: str, client) -> None:
        self.bucket = bucket
        self._s3 = client

    @classmethod
    def from_settings(
        cls, bucket: str, region: str, endpoint_url: str | None = None
    ) -> "S3ObjectStore":
        client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
        return cls(bucket, client)

    def exists(self, key: str) -> bool:
        try:
            self._s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise StorageFailure(f"head failed for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageFailure(f"head failed for {key}: {exc}") from exc
        return True

    def get(self, key: str) -> bytes:
        try:
            response = self._s3.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in {"404", "NoSuchKey", "NotFound"}:
                raise ObjectNotFound(key) from exc
            raise StorageFailure(f"read failed for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageFailure(f"read failed for {key}: {exc}") from exc

    def put(self, key: str, data: bytes, visibility: str = VISIBILITY_PRIVATE) -> None:
        acl = _S3_ACLS[_check_visibility(visibility)]
        content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        try:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ACL=acl,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageFailure(f"write failed for {key}: {exc}") from exc
        logger.info("[STORE] wrote s3://%s/%s bytes=%d acl=%s", self.bucket, key, len(data), acl)

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            ttl_seconds = 60
        try:
            return self._s3.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageFailure(f"signing failed for {key}: {exc}") from exc


def build_object_store(config) -> ObjectStore:
    backend = (config.get("CERTIFICATE_STORAGE") or "local").strip().lower()
    if backend == "s3":
        bucket = config.get("S3_BUCKET")
        if not bucket:
            raise ValueError("S3_BUCKET is required when CERTIFICATE_STORAGE=s3")
        return S3ObjectStore.from_settings(
            bucket, config.get("S3_REGION") or "us-east-1", config.get("S3_ENDPOINT_URL")
        )
    if backend == "local":
        return LocalObjectStore(config["SITE_ROOT"], config["SECRET_KEY"])
    raise ValueError(f"Unsupported CERTIFICATE_STORAGE: {backend!r}")
