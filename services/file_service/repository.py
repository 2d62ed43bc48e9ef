# services/file_service/repository.py
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError

from common.utils.logger import get_logger
from .exceptions import AlreadyExists, MetadataStoreError, NotFound, StoreUnavailable
from .models import (
    FIELD_NAME,
    FIELD_ORDER_NO,
    FIELD_PATH,
    FIELD_SIZE,
    FIELD_TAGS,
    FileMeta,
    FileTag,
)

logger = get_logger("file_service.metadata_store")

MERGEABLE_FIELDS = (FIELD_PATH, FIELD_NAME, FIELD_SIZE, FIELD_TAGS, FIELD_ORDER_NO)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FileRecord:
    id: str
    path: str
    name: str
    order_no: str
    file_size: int = 0
    tags: List[str] = field(default_factory=list)
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: FileMeta) -> "FileRecord":
        return cls(
            id=row.id,
            path=row.path,
            name=row.name,
            order_no=row.order_no,
            file_size=row.file_size,
            tags=list(row.tags),
            create_time=_utc(row.create_time),
            update_time=_utc(row.update_time),
        )


def _tag_rows(tags: Sequence[str]) -> List[FileTag]:
    return [FileTag(position=i, tag=tag) for i, tag in enumerate(tags)]


class MetadataStore:
    """File metadata records kept in a SQL database through SQLAlchemy."""

    def __init__(self, session_factory=None, clock=_utcnow):
        if session_factory is None:
            from .db import SessionLocal
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.clock = clock

    @contextmanager
    def _session(self, step: str, file_id: str = ""):
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            if isinstance(e, (OperationalError, InterfaceError)):
                logger.error(f"Metadata store unreachable during {step} {file_id}: {e}")
                raise StoreUnavailable(f"{step} {file_id}: {e}") from e
            logger.error(f"Metadata store failed during {step} {file_id}: {e}")
            raise MetadataStoreError(f"{step} {file_id}: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create(self, file_id: str, record: FileRecord) -> FileRecord:
        now = self.clock()
        try:
            with self._session("create", file_id) as db:
                if db.get(FileMeta, file_id) is not None:
                    raise AlreadyExists(file_id)
                row = FileMeta(
                    id=file_id,
                    path=record.path,
                    name=record.name,
                    file_size=record.file_size,
                    order_no=record.order_no,
                    create_time=now,
                    update_time=now,
                    tag_rows=_tag_rows(record.tags),
                )
                db.add(row)
                db.flush()
                result = FileRecord.from_row(row)
        except MetadataStoreError as e:
            # a concurrent insert of the same key loses the race at commit
            if isinstance(e.__cause__, IntegrityError):
                raise AlreadyExists(file_id) from e
            raise
        logger.info(f"Created metadata record {file_id}")
        return result

    def get(self, file_id: str) -> FileRecord:
        with self._session("get", file_id) as db:
            row = db.get(FileMeta, file_id)
            if row is None:
                raise NotFound(file_id)
            return FileRecord.from_row(row)

    def merge(self, file_id: str, changes: dict) -> FileRecord:
        """
        Updates only the named fields of a record and bumps its update time.
        Keys must be among MERGEABLE_FIELDS; tags are replaced, never merged.
        """
        unknown = set(changes) - set(MERGEABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown fields for merge: {sorted(unknown)}")

        with self._session("merge", file_id) as db:
            row = db.get(FileMeta, file_id)
            if row is None:
                raise NotFound(file_id)

            if FIELD_PATH in changes:
                row.path = changes[FIELD_PATH]
            if FIELD_NAME in changes:
                row.name = changes[FIELD_NAME]
            if FIELD_SIZE in changes:
                row.file_size = changes[FIELD_SIZE]
            if FIELD_ORDER_NO in changes:
                row.order_no = changes[FIELD_ORDER_NO]
            if FIELD_TAGS in changes:
                # old rows must be gone before new ones reuse their positions
                row.tag_rows.clear()
                db.flush()
                row.tag_rows = _tag_rows(changes[FIELD_TAGS])
            row.update_time = self.clock()

            db.flush()
            result = FileRecord.from_row(row)
        logger.info(f"Merged fields {sorted(changes)} into record {file_id}")
        return result

    def delete(self, file_id: str) -> None:
        with self._session("delete", file_id) as db:
            row = db.get(FileMeta, file_id)
            if row is None:
                raise NotFound(file_id)
            db.delete(row)
        logger.info(f"Deleted metadata record {file_id}")

    def list_by_tags(self, tags: Sequence[str], cursor: Optional[str] = None, limit: int = 50) -> Iterator[FileRecord]:
        """
        Yields records carrying every tag in `tags`, newest `orderNo` first,
        starting strictly after `cursor` (the last orderNo of the previous page).
        """
        stmt = select(FileMeta)
        for tag in tags:
            stmt = stmt.where(FileMeta.id.in_(select(FileTag.file_id).where(FileTag.tag == tag)))
        if cursor:
            stmt = stmt.where(FileMeta.order_no < cursor)
        stmt = stmt.order_by(FileMeta.order_no.desc()).limit(limit)

        with self._session("list", ",".join(tags)) as db:
            for row in db.scalars(stmt):
                yield FileRecord.from_row(row)

    def all_paths(self) -> Iterator[tuple]:
        """Yields (id, path) for every record."""
        with self._session("scan") as db:
            for file_id, path in db.execute(select(FileMeta.id, FileMeta.path)):
                yield file_id, path
