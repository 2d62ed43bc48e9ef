"""Pytest configuration and fixtures for the file service tests."""

import io
import itertools
import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# keep db.py off Postgres while the test modules import it
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from services.file_service.db import Base
from services.file_service.minio_client import BlobStore
from services.file_service.repository import MetadataStore
from services.file_service.service import FileService

BUCKET = "test-bucket"
BASE_PATH = "files/"
RESOURCE_BASE = "http://cdn.test/"


class FakeMinio:
    """In-memory stand-in for minio.Minio covering the calls BlobStore makes."""

    def __init__(self):
        self.objects = {}
        self.mtimes = {}
        self.calls = []
        self.fail_on = None  # callable(op, object_name) -> Exception or None

    def _maybe_fail(self, op, object_name):
        if self.fail_on is not None:
            error = self.fail_on(op, object_name)
            if error is not None:
                raise error

    def put_object(self, bucket_name, object_name, data, length, content_type="application/octet-stream", part_size=0):
        self.calls.append(("put", object_name))
        self._maybe_fail("put", object_name)
        payload = data.read() if length < 0 else data.read(length)
        self.objects[(bucket_name, object_name)] = payload
        self.mtimes[(bucket_name, object_name)] = datetime.now(timezone.utc)

    def remove_object(self, bucket_name, object_name):
        self.calls.append(("remove", object_name))
        self._maybe_fail("remove", object_name)
        self.objects.pop((bucket_name, object_name), None)
        self.mtimes.pop((bucket_name, object_name), None)

    def list_objects(self, bucket_name, prefix=None, recursive=False):
        self.calls.append(("list", prefix))
        for bucket, name in sorted(self.objects):
            if bucket == bucket_name and name.startswith(prefix or ""):
                yield SimpleNamespace(object_name=name, last_modified=self.mtimes[(bucket, name)])

    def age(self, seconds, bucket=BUCKET):
        """Moves every object's modification time `seconds` into the past."""
        for key in self.mtimes:
            if key[0] == bucket:
                self.mtimes[key] -= timedelta(seconds=seconds)

    def read(self, object_name, bucket=BUCKET):
        return self.objects[(bucket, object_name)]

    def exists(self, object_name, bucket=BUCKET):
        return (bucket, object_name) in self.objects


def make_image_bytes(fmt="PNG", size=(640, 480), color=(200, 30, 30)):
    mode = "RGB" if fmt in ("JPEG",) else "RGBA"
    fill = color if mode == "RGB" else color + (255,)
    img = Image.new(mode, size, fill)
    buf = io.BytesIO()
    if fmt == "GIF":
        img = img.convert("P")
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def db_clock():
    """Store clock advancing one millisecond per read."""
    start = datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: start + timedelta(milliseconds=next(ticks))


@pytest.fixture
def ms_clock():
    """Millisecond clock for orderNo, strictly increasing per read."""
    ticks = itertools.count(1_700_000_000_000)
    return lambda: next(ticks)


@pytest.fixture
def metadata_store(session_factory, db_clock):
    return MetadataStore(session_factory, clock=db_clock)


@pytest.fixture
def fake_minio():
    return FakeMinio()


@pytest.fixture
def blob_store(fake_minio):
    return BlobStore(client=fake_minio, bucket=BUCKET)


@pytest.fixture
def file_service(blob_store, metadata_store, ms_clock):
    return FileService(
        blob_store,
        metadata_store,
        clock=ms_clock,
        base_path=BASE_PATH,
        resource_base=RESOURCE_BASE,
        page_size=50,
        serialize_mutations=False,
    )


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG", (640, 480))
