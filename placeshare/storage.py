"""
Image storage abstraction: local disk, S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

# URL path (without leading slash) under which locally stored images are served.
LOCAL_IMAGE_URL_PREFIX = "uploads/images"

CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


def _object_name(extension: str) -> str:
    return f"{uuid.uuid4().hex}.{extension.lower().lstrip('.')}"


class StorageClient(Protocol):
    """Defines the operations the API needs from image storage."""

    def save(self, data: bytes, extension: str) -> str:
        """Store ``data`` and return the path/reference recorded on the entity."""
        ...

    def delete(self, path: str) -> None:
        """Remove a stored object. Raises ``OSError`` if it cannot be removed."""
        ...

    def exists(self, path: str) -> bool:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    prefix: str = "uploads/images"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def save(self, data: bytes, extension: str) -> str:
        path = f"{self.prefix}/{_object_name(extension)}"
        self.stored_objects[path] = bytes(data)
        return path

    def delete(self, path: str) -> None:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        del self.stored_objects[path]

    def exists(self, path: str) -> bool:
        return path in self.stored_objects


@dataclass
class LocalStorageClient:
    """Stores images on local disk under ``base_dir`` (served as static files).

    Saved images are referenced as ``<url_prefix>/<name>``, the URL path the
    app serves ``base_dir`` under, wherever ``base_dir`` lives on disk.
    """

    base_dir: str = "uploads/images"
    url_prefix: str = LOCAL_IMAGE_URL_PREFIX

    def __post_init__(self):
        Path(self.base_dir).mkdir(parents=True, exist_ok=True)

    def _file_path(self, path: str) -> str:
        prefix = self.url_prefix.strip("/") + "/"
        name = path[len(prefix):] if path.startswith(prefix) else path
        if not name or "/" in name or name in (".", ".."):
            raise FileNotFoundError(path)
        return os.path.join(self.base_dir, name)

    def save(self, data: bytes, extension: str) -> str:
        name = _object_name(extension)
        with open(os.path.join(self.base_dir, name), "wb") as f:
            f.write(data)
        return f"{self.url_prefix.strip('/')}/{name}"

    def delete(self, path: str) -> None:
        os.remove(self._file_path(path))

    def exists(self, path: str) -> bool:
        try:
            return os.path.isfile(self._file_path(path))
        except FileNotFoundError:
            return False


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client. The returned path is the object key.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    prefix: str = "uploads/images"

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def save(self, data: bytes, extension: str) -> str:
        key = f"{self.prefix}/{_object_name(extension)}"
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=CONTENT_TYPES.get(
                    extension.lower(), "application/octet-stream"
                ),
            )
        except (BotoCoreError, ClientError) as exc:
            raise OSError(f"could not store {key}: {exc}") from exc
        return key

    def delete(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path)
        except (BotoCoreError, ClientError) as exc:
            raise OSError(f"could not delete {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=path)
        except ClientError:
            return False
        return True
