"""Object storage for project bundles and asset files.

A bucket is opened from a scheme-qualified URL (``BLOB_US``):

* ``mem://``                in-process dict, for tests and local experiments
* ``file:///srv/media``     a directory on disk, served by the app as static files
* ``s3://bucket?region=..`` any S3 compatible store (``kodo://`` is accepted as an
  alias, Qiniu exposes an S3 endpoint); needs ``boto3``

Keys are always relative (``sprites/3f1c...png``); turning them into public
URLs is the job of :meth:`BlobStore.public_url`.
"""
from __future__ import annotations

import logging
import os
import secrets
import threading
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlparse

from core.cancel import CancelToken, check
from core.errors import BadInputError, UpstreamError

logger = logging.getLogger(__name__)


def public_url(cdn_prefix: str, key: str) -> str:
    return cdn_prefix.rstrip("/") + "/" + key.lstrip("/")


def make_key(prefix: str, suffix: str) -> str:
    """Return ``<prefix>/<random>.<ext>`` with 128 bits of randomness."""
    ext = os.path.splitext(suffix or "")[1].lower()
    token = secrets.token_hex(16)
    prefix = (prefix or "").strip("/")
    name = f"{token}{ext}"
    return f"{prefix}/{name}" if prefix else name


class BlobStore:
    """Put and delete opaque byte strings under relative keys."""

    scheme = ""

    def __init__(self, cdn_prefix: str = ""):
        self.cdn_prefix = cdn_prefix

    def put(self, prefix: str, suffix: str, data: bytes, cancel: Optional[CancelToken] = None) -> str:
        check(cancel)
        key = make_key(prefix, suffix)
        self._write(key, data)
        logger.debug("stored %d bytes at %s", len(data), key)
        return key

    def delete(self, key: str, cancel: Optional[CancelToken] = None):
        check(cancel)
        if not key:
            return
        self._remove(key)
        logger.debug("deleted %s", key)

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def read(self, key: str) -> bytes:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        return public_url(self.cdn_prefix, key)

    def close(self):
        pass

    def _write(self, key: str, data: bytes):
        raise NotImplementedError

    def _remove(self, key: str):
        raise NotImplementedError


class MemoryBlobStore(BlobStore):
    scheme = "mem"

    def __init__(self, cdn_prefix: str = ""):
        super().__init__(cdn_prefix)
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def read(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._objects[key]
            except KeyError:
                raise UpstreamError(f"no such blob: {key}") from None

    def _write(self, key: str, data: bytes):
        with self._lock:
            self._objects[key] = bytes(data)

    def _remove(self, key: str):
        with self._lock:
            self._objects.pop(key, None)


class LocalBlobStore(BlobStore):
    scheme = "file"

    def __init__(self, root: str | Path, cdn_prefix: str = ""):
        super().__init__(cdn_prefix)
        self.root = Path(root).expanduser().resolve()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise UpstreamError(f"cannot open bucket {self.root}: {exc}") from exc

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise BadInputError(f"key escapes bucket: {key}")
        return path

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def read(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except OSError as exc:
            raise UpstreamError(str(exc)) from exc

    def _write(self, key: str, data: bytes):
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as out:
                out.write(data)
        except OSError as exc:
            raise UpstreamError(f"write {key}: {exc}") from exc

    def _remove(self, key: str):
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise UpstreamError(f"delete {key}: {exc}") from exc


class S3BlobStore(BlobStore):
    scheme = "s3"

    def __init__(self, bucket: str, cdn_prefix: str = "", region: Optional[str] = None,
                 endpoint: Optional[str] = None, key_prefix: str = ""):
        super().__init__(cdn_prefix)
        try:
            import boto3  # type: ignore
            from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
        except ImportError as exc:
            raise RuntimeError(f"boto3 required for S3 buckets: {exc}") from exc
        self._errors = (BotoCoreError, ClientError)
        self.bucket = bucket
        self.key_prefix = key_prefix.strip("/")
        self._client = boto3.client("s3", region_name=region, endpoint_url=endpoint)
        try:
            self._client.head_bucket(Bucket=bucket)
        except self._errors as exc:
            raise UpstreamError(f"cannot open bucket {bucket}: {exc}") from exc

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}/{key}" if self.key_prefix else key

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=self._full_key(key))
            return True
        except self._errors:
            return False

    def read(self, key: str) -> bytes:
        try:
            obj = self._client.get_object(Bucket=self.bucket, Key=self._full_key(key))
            return obj["Body"].read()
        except self._errors as exc:
            raise UpstreamError(str(exc)) from exc

    def _write(self, key: str, data: bytes):
        try:
            self._client.put_object(Bucket=self.bucket, Key=self._full_key(key), Body=data)
        except self._errors as exc:
            raise UpstreamError(f"put {key}: {exc}") from exc

    def _remove(self, key: str):
        # S3 DeleteObject already succeeds for missing keys
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._full_key(key))
        except self._errors as exc:
            raise UpstreamError(f"delete {key}: {exc}") from exc


def open_bucket(blob_us: str, cdn_prefix: str = "") -> BlobStore:
    parsed = urlparse(blob_us or "")
    scheme = parsed.scheme.lower()
    if scheme == "mem":
        return MemoryBlobStore(cdn_prefix)
    if scheme == "file":
        root = (parsed.netloc + parsed.path) or "."
        return LocalBlobStore(root, cdn_prefix)
    if scheme in ("s3", "kodo"):
        query = {k: v[-1] for k, v in parse_qs(parsed.query).items()}
        if not parsed.netloc:
            raise BadInputError(f"missing bucket name in {blob_us!r}")
        return S3BlobStore(
            parsed.netloc,
            cdn_prefix,
            region=query.get("region"),
            endpoint=query.get("endpoint"),
            key_prefix=parsed.path,
        )
    raise BadInputError(f"unsupported blob URL scheme: {blob_us!r}")
