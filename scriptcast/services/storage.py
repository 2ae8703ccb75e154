"""Artifact storage: a directory-addressable byte sink."""

import logging
import posixpath
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from scriptcast.config import Settings, get_settings
from scriptcast.exceptions import ConfigurationError, StorageError

logger = logging.getLogger(__name__)


def artifact_path(directory: Optional[str], filename: str) -> str:
    """Path of ``filename`` inside ``directory`` (storage-relative)."""
    return posixpath.join(directory, filename) if directory else filename


class ArtifactStorage(ABC):
    """Stores fragment, image, script and assembled artifacts."""

    storage_type = "abstract"

    @abstractmethod
    async def write(self, path: str, data: bytes) -> str:
        """Write ``data`` to ``path`` and return its location."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read the bytes stored at ``path``."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the artifact at ``path``."""


class LocalArtifactStorage(ArtifactStorage):
    """Local filesystem storage rooted at a base directory.

    Absolute paths are honoured as given, relative paths resolve under the root.
    """

    storage_type = "local"

    def __init__(self, root: str):
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        return self.root / path

    async def write(self, path: str, data: bytes) -> str:
        file_path = self.resolve(path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(data)
        except OSError as e:
            raise StorageError(
                message=f"Failed to write artifact: {e}",
                storage_type=self.storage_type,
                file_path=str(file_path),
                cause=e,
            )
        logger.info(f"File {file_path} saved to file system.")
        return str(file_path)

    async def read(self, path: str) -> bytes:
        file_path = self.resolve(path)
        try:
            return file_path.read_bytes()
        except OSError as e:
            raise StorageError(
                message=f"Failed to read artifact: {e}",
                storage_type=self.storage_type,
                file_path=str(file_path),
                cause=e,
            )

    async def delete(self, path: str) -> None:
        file_path = self.resolve(path)
        try:
            file_path.unlink()
        except OSError as e:
            raise StorageError(
                message=f"Failed to delete artifact: {e}",
                storage_type=self.storage_type,
                file_path=str(file_path),
                cause=e,
            )
        logger.info(f"Cleaned up: {file_path}")


class S3ArtifactStorage(ArtifactStorage):
    """AWS S3 storage; paths become object keys."""

    storage_type = "s3"

    CONTENT_TYPES = {
        ".wav": "audio/wav",
        ".mp3": "audio/mpeg",
        ".jpg": "image/jpeg",
        ".png": "image/png",
        ".txt": "text/plain; charset=utf-8",
    }

    def __init__(self, bucket_name: str, region: str = "us-east-1", client=None):
        self.bucket_name = bucket_name
        self.s3_client = client or boto3.client("s3", region_name=region)

    @staticmethod
    def _key(path: str) -> str:
        return path.lstrip("/")

    async def write(self, path: str, data: bytes) -> str:
        key = self._key(path)
        content_type = self.CONTENT_TYPES.get(posixpath.splitext(key)[1].lower(), "application/octet-stream")
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            raise StorageError(
                message=f"S3 upload failed: {e.response['Error']['Message']}",
                storage_type=self.storage_type,
                file_path=key,
                cause=e,
            )
        logger.info(f"Uploaded s3://{self.bucket_name}/{key} ({len(data)} bytes)")
        return f"s3://{self.bucket_name}/{key}"

    async def read(self, path: str) -> bytes:
        key = self._key(path)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            return response["Body"].read()
        except ClientError as e:
            raise StorageError(
                message=f"S3 download failed: {e.response['Error']['Message']}",
                storage_type=self.storage_type,
                file_path=key,
                cause=e,
            )

    async def delete(self, path: str) -> None:
        key = self._key(path)
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            raise StorageError(
                message=f"S3 delete failed: {e.response['Error']['Message']}",
                storage_type=self.storage_type,
                file_path=key,
                cause=e,
            )


def create_storage(settings: Optional[Settings] = None) -> ArtifactStorage:
    """Build the configured storage backend."""
    settings = settings or get_settings()
    if settings.storage_type == "s3":
        if not settings.s3_bucket_name:
            raise ConfigurationError(
                message="S3 storage selected but no bucket configured",
                missing_key="s3_bucket_name",
            )
        return S3ArtifactStorage(settings.s3_bucket_name, region=settings.s3_region)
    return LocalArtifactStorage(settings.local_storage_path)
