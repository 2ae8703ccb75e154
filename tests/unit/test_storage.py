"""Tests for artifact storage backends."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from scriptcast.exceptions import ConfigurationError, StorageError
from scriptcast.services.storage import (
    LocalArtifactStorage,
    S3ArtifactStorage,
    artifact_path,
    create_storage,
)


def client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


class TestArtifactPath:
    """Test suite for artifact_path."""

    def test_joins_directory(self):
        """A directory prefixes the filename."""
        assert artifact_path("run/audio", "x.wav") == "run/audio/x.wav"

    def test_no_directory(self):
        """Without a directory the filename is used as is."""
        assert artifact_path(None, "x.wav") == "x.wav"


class TestLocalArtifactStorage:
    """Test suite for LocalArtifactStorage."""

    async def test_write_read_delete(self, tmp_path):
        """Artifacts are written under the root and can be removed."""
        storage = LocalArtifactStorage(str(tmp_path))

        location = await storage.write("run/a.bin", b"\x00\x01")

        assert location == str(tmp_path / "run" / "a.bin")
        assert await storage.read("run/a.bin") == b"\x00\x01"
        await storage.delete("run/a.bin")
        assert not (tmp_path / "run" / "a.bin").exists()

    async def test_absolute_paths_are_honoured(self, tmp_path):
        """Absolute paths ignore the root."""
        storage = LocalArtifactStorage("/nonexistent-root")
        target = tmp_path / "abs.txt"

        assert await storage.write(str(target), b"hi") == str(target)

    async def test_missing_file_is_storage_error(self, tmp_path):
        """Reading or deleting a missing artifact raises StorageError."""
        storage = LocalArtifactStorage(str(tmp_path))
        with pytest.raises(StorageError):
            await storage.read("missing.wav")
        with pytest.raises(StorageError):
            await storage.delete("missing.wav")


class TestS3ArtifactStorage:
    """Test suite for S3ArtifactStorage."""

    @pytest.fixture
    def s3_client(self) -> MagicMock:
        """Mocked boto3 S3 client."""
        return MagicMock()

    async def test_write_uploads_with_content_type(self, s3_client):
        """Writes become put_object calls keyed by path."""
        storage = S3ArtifactStorage("bucket", client=s3_client)

        location = await storage.write("run/COMPLETE_AUDIO.wav", b"RIFF")

        assert location == "s3://bucket/run/COMPLETE_AUDIO.wav"
        s3_client.put_object.assert_called_once_with(
            Bucket="bucket",
            Key="run/COMPLETE_AUDIO.wav",
            Body=b"RIFF",
            ContentType="audio/wav",
        )

    async def test_read_returns_body(self, s3_client):
        """Reads return the object body."""
        s3_client.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"data"))}
        storage = S3ArtifactStorage("bucket", client=s3_client)

        assert await storage.read("/run/x.jpg") == b"data"
        s3_client.get_object.assert_called_once_with(Bucket="bucket", Key="run/x.jpg")

    async def test_client_errors_become_storage_errors(self, s3_client):
        """boto ClientErrors are translated."""
        s3_client.put_object.side_effect = client_error("PutObject")
        s3_client.delete_object.side_effect = client_error("DeleteObject")
        storage = S3ArtifactStorage("bucket", client=s3_client)

        with pytest.raises(StorageError, match="denied"):
            await storage.write("x.wav", b"")
        with pytest.raises(StorageError):
            await storage.delete("x.wav")


class TestCreateStorage:
    """Test suite for create_storage."""

    def test_local_by_default(self, settings):
        """Local storage is rooted at local_storage_path."""
        storage = create_storage(settings)
        assert isinstance(storage, LocalArtifactStorage)
        assert str(storage.root) == settings.local_storage_path

    def test_s3_requires_bucket(self, settings):
        """Selecting S3 without a bucket is a configuration error."""
        settings.storage_type = "s3"
        with pytest.raises(ConfigurationError):
            create_storage(settings)
