# services/file_service/minio_client.py
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import BinaryIO, Callable, Iterator, Optional, Tuple, Union

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError as TransportError

from common.config.settings import settings
from common.utils.logger import get_logger
from .exceptions import BlobStoreError, StoreError, StoreUnavailable

logger = get_logger("file_service.blob_store")

# Streams of unknown length are uploaded in parts of this size
STREAM_PART_SIZE = 10 * 1024 * 1024

Transcoder = Callable[[bytes], Union[bytes, BinaryIO]]


def get_minio_client():
    return Minio(
        endpoint=settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE
    )


@dataclass(frozen=True)
class Direct:
    """Store the bytes as given."""


@dataclass(frozen=True)
class Transcoded:
    """Run `transcoder` over the bytes and store its output."""
    transcoder: Transcoder


WriteMode = Union[Direct, Transcoded]


@dataclass(frozen=True)
class WriteResult:
    path: str
    size: Optional[int]  # None when the written length could not be determined

    @property
    def size_known(self) -> bool:
        return self.size is not None


class BlobStore:
    """Byte transfer to and from a single MinIO bucket."""

    def __init__(self, client: Minio = None, bucket: str = None):
        self.client = client or get_minio_client()
        self.bucket = bucket or settings.MINIO_BUCKET

    def put(self, path: str, data: bytes, mode: WriteMode = Direct(),
            content_type: str = "application/octet-stream") -> WriteResult:
        if isinstance(mode, Direct):
            return self._upload(path, data, content_type)
        if isinstance(mode, Transcoded):
            # DecodeError from the transcoder propagates untouched
            return self._upload(path, mode.transcoder(data), "image/png")
        raise TypeError(f"Unsupported write mode: {mode!r}")

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> WriteResult:
        return self.put(path, data, Direct(), content_type)

    def transcode_and_write(self, path: str, data: bytes, transcoder: Transcoder) -> WriteResult:
        return self.put(path, data, Transcoded(transcoder))

    def delete(self, *paths: str) -> None:
        """
        Removes the given paths in order. Empty paths are skipped.
        Every path is attempted; if any failed, the first error is raised once
        all have been tried, so after an error some or all paths may remain.
        """
        failures = []
        for path in paths:
            if not path:
                logger.info("No path to delete")
                continue
            try:
                with self._translate_errors("delete", path):
                    self.client.remove_object(bucket_name=self.bucket, object_name=path)
            except StoreError as e:
                failures.append((path, e))
                continue
            logger.info(f"Deleted object {self.bucket}/{path}")

        if failures:
            failed = [p for p, _ in failures]
            first = failures[0][1]
            raise type(first)(f"delete failed for {failed}: {first}") from first

    def list_paths(self, prefix: str = "") -> Iterator[Tuple[str, Optional[datetime]]]:
        """Yields (object name, last modified) for every object under `prefix`."""
        with self._translate_errors("list", prefix):
            for obj in self.client.list_objects(self.bucket, prefix=prefix, recursive=True):
                yield obj.object_name, getattr(obj, "last_modified", None)

    def _upload(self, path: str, payload: Union[bytes, BinaryIO], content_type: str) -> WriteResult:
        if isinstance(payload, (bytes, bytearray)):
            stream = BytesIO(payload)
            length = len(payload)
            part_size = 0
        else:
            stream = payload
            length = -1
            part_size = STREAM_PART_SIZE

        with self._translate_errors("write", path):
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=path,
                data=stream,
                length=length,
                content_type=content_type,
                part_size=part_size,
            )
        logger.info(f"Uploaded object {self.bucket}/{path} ({length if length >= 0 else 'unknown'} bytes)")
        return WriteResult(path=path, size=length if length >= 0 else None)

    @contextmanager
    def _translate_errors(self, step: str, path: str):
        where = f"{step} {self.bucket}/{path}"
        try:
            yield
        except TransportError as e:
            logger.error(f"Blob store unreachable during {where}: {e}")
            raise StoreUnavailable(f"{where}: {e}") from e
        except (S3Error, MinioException) as e:
            logger.error(f"Blob store failed during {where}: {e}")
            raise BlobStoreError(f"{where}: {e}") from e
