from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.ocl.errors import StoreError


class StorageError(StoreError):
    pass


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        """Remove `key`; returns False when there was nothing to remove."""
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    """Files under `root`; keys are relative paths and may not climb out of it."""

    root: Path

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        if ".." in safe_key.split("/"):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.root / safe_key

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write {key!r}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        p = self._path(key)
        try:
            return p.open("rb")
        except FileNotFoundError:
            raise
        except OSError as e:
            raise StorageError(f"Could not read {key!r}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> bool:
        p = self._path(key)
        if not p.exists():
            return False
        try:
            p.unlink()
        except OSError as e:
            raise StorageError(f"Could not delete {key!r}: {e}") from e
        return True


_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


def _is_missing(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code") in _MISSING_CODES


@dataclass(frozen=True)
class S3Storage(Storage):
    """S3-compatible object storage (DigitalOcean Spaces, MinIO, AWS)."""

    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str

    def _client(self):
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._client().put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Could not write {key!r}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        try:
            return self._client().get_object(Bucket=self.bucket, Key=key)["Body"]
        except ClientError as e:
            if _is_missing(e):
                raise FileNotFoundError(key) from e
            raise StorageError(f"Could not read {key!r}: {e}") from e

    def exists(self, key: str) -> bool:
        try:
            self._client().head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageError(f"Could not stat {key!r}: {e}") from e
        return True

    def delete(self, key: str) -> bool:
        if not self.exists(key):
            return False
        try:
            self._client().delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Could not delete {key!r}: {e}") from e
        return True


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
        )
    root = (config.get("STORAGE_ROOT") or "").strip()
    return LocalStorage(root=Path(root) if root else Path(os.getcwd()) / "storage")
