# services/file_service/service.py
import posixpath
import threading
import uuid
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from common.config.settings import settings
from common.utils.logger import get_logger
from .exceptions import FileServiceError, NotFound, UploadBatchError
from .minio_client import BlobStore
from .models import FIELD_NAME, FIELD_ORDER_NO, FIELD_PATH, FIELD_SIZE, FIELD_TAGS
from .paths import is_image, now_ms, order_no, primary_path, resource_url, thumbnail_path
from .processor.thumbnail import ThumbnailTranscoder
from .repository import FileRecord, MetadataStore
from .schemas import FileView
from .tags import normalize

logger = get_logger("file_service")


@dataclass
class UploadItem:
    filename: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def base_name(self) -> str:
        return posixpath.basename(self.filename.replace("\\", "/"))


def format_time(value: Optional[datetime]) -> str:
    """ISO-8601 with millisecond precision in UTC, e.g. 2024-05-01T10:20:30.123Z"""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def new_file_id() -> str:
    return str(uuid.uuid4())


class KeyedLock:
    """One mutex per key, created on demand and dropped when nobody holds it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


class FileService:
    """
    Keeps the primary blob, its thumbnail and the metadata record of each file
    in step across upload, update, delete and list.

    Blobs are always written before the metadata record is created and removed
    before the record is deleted, so an interrupted operation leaves at worst
    an orphaned blob, never a record pointing at nothing. Nothing is retried or
    rolled back; failures are logged with id, path and step and re-raised.
    """

    def __init__(
        self,
        blobs: BlobStore,
        metadata: MetadataStore,
        transcoder=None,
        id_factory=new_file_id,
        clock=now_ms,
        base_path: str = None,
        resource_base: str = None,
        page_size: int = None,
        serialize_mutations: bool = None,
    ):
        self.blobs = blobs
        self.metadata = metadata
        self.transcoder = transcoder or ThumbnailTranscoder()
        self.id_factory = id_factory
        self.clock = clock
        self.base_path = settings.BUCKET_BASE_PATH if base_path is None else base_path
        self.resource_base = settings.RESOURCE_BASE_PATH if resource_base is None else resource_base
        self.page_size = page_size or settings.PAGE_SIZE
        if serialize_mutations is None:
            serialize_mutations = settings.SERIALIZE_MUTATIONS
        self._locks = KeyedLock() if serialize_mutations else None

    # ---------------- projection ----------------

    def to_view(self, record: FileRecord) -> FileView:
        thumb_url = ""
        if is_image(record.name):
            thumb_url = resource_url(thumbnail_path(record.path), self.resource_base)
        return FileView(
            id=record.id,
            name=record.name,
            tags=list(record.tags),
            url=resource_url(record.path, self.resource_base),
            thumb_url=thumb_url,
            order_no=record.order_no,
            size=record.file_size,
            create_time=format_time(record.create_time),
            update_time=format_time(record.update_time),
        )

    # ---------------- operations ----------------

    def upload(self, files: Sequence[UploadItem], tag_string: str = "") -> List[FileView]:
        """
        Stores each file in order. The batch is not atomic: when a file fails,
        the ones before it stay persisted and are carried by the UploadBatchError.
        """
        tags = normalize(tag_string)
        persisted = []
        for item in files:
            filename = item.base_name
            logger.info(f"Process uploaded file: {filename}")
            try:
                view = self._upload_one(item, filename, tags)
            except FileServiceError as e:
                logger.error(
                    f"Upload of {filename} failed after {len(persisted)} persisted file(s): "
                    f"{[v.id for v in persisted]}"
                )
                raise UploadBatchError(filename, e, persisted) from e
            persisted.append(view)
            logger.info(f"Uploaded file: {filename} as {view.id}")
        return persisted

    def update(self, file_id: str, tag_string: str = "", new_file: Optional[UploadItem] = None) -> FileView:
        with self._mutation(file_id):
            with self._step("get-record", file_id, ""):
                current = self.metadata.get(file_id)

            changes = {
                FIELD_TAGS: normalize(tag_string),
                FIELD_ORDER_NO: order_no(file_id, self.clock()),
            }
            if new_file is not None:
                new_id = self.id_factory()
                new_path = primary_path(new_id, self.base_path)
                filename = new_file.base_name
                logger.info(f"Replacing {current.path} of {file_id} with {filename} at {new_path}")

                self._delete_blobs(file_id, current.path)
                size = self._write_blobs(file_id, new_path, new_file, filename)
                changes[FIELD_PATH] = new_path
                changes[FIELD_NAME] = filename
                changes[FIELD_SIZE] = size

            with self._step("merge", file_id, changes.get(FIELD_PATH, current.path)):
                record = self.metadata.merge(file_id, changes)
        return self.to_view(record)

    def delete(self, file_id: str) -> None:
        with self._mutation(file_id):
            with self._step("get-record", file_id, ""):
                current = self.metadata.get(file_id)
            # blobs go first: a crash here orphans a blob, not a record
            self._delete_blobs(file_id, current.path)
            with self._step("delete-record", file_id, current.path):
                self.metadata.delete(file_id)
        logger.info(f"Object {file_id} deleted")

    def list(self, tag_string: str = "", cursor: Optional[str] = None, limit: Optional[int] = None) -> List[FileView]:
        tags = normalize(tag_string)
        records = self.metadata.list_by_tags(tags, cursor or None, limit or self.page_size)
        return [self.to_view(record) for record in records]

    # ---------------- steps ----------------

    def _upload_one(self, item: UploadItem, filename: str, tags: List[str]) -> FileView:
        file_id = self.id_factory()
        path = primary_path(file_id, self.base_path)
        size = self._write_blobs(file_id, path, item, filename)

        record = FileRecord(
            id=file_id,
            path=path,
            name=filename,
            order_no=order_no(file_id, self.clock()),
            file_size=size,
            tags=tags,
        )
        with self._step("create-record", file_id, path):
            created = self.metadata.create(file_id, record)
        return self.to_view(created)

    def _write_blobs(self, file_id: str, path: str, item: UploadItem, filename: str) -> int:
        with self._step("write", file_id, path):
            result = self.blobs.write(path, item.data, item.content_type)

        if is_image(filename):
            thumb = thumbnail_path(path)
            # the primary is already stored; a failure here leaves it orphaned
            with self._step("write-thumbnail", file_id, thumb):
                self.blobs.transcode_and_write(thumb, item.data, self.transcoder)
        return result.size if result.size_known else len(item.data)

    def _delete_blobs(self, file_id: str, path: str) -> None:
        if not path:
            logger.info(f"No blob path recorded for {file_id}")
            return
        # primary before thumbnail
        with self._step("delete-blobs", file_id, path):
            self.blobs.delete(path, thumbnail_path(path))

    @contextmanager
    def _step(self, step: str, file_id: str, path: str):
        try:
            yield
        except NotFound:
            logger.info(f"Step {step}: id={file_id} not found")
            raise
        except FileServiceError:
            logger.exception(f"Step {step} failed for id={file_id} path={path}")
            raise

    def _mutation(self, file_id: str):
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(file_id)
