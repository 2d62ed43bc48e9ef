import io
from datetime import datetime, timezone
from unittest.mock import MagicMock, call

import pytest
from minio.error import MinioException
from urllib3.exceptions import ProtocolError

from services.file_service.exceptions import BlobStoreError, DecodeError, StoreUnavailable
from services.file_service.minio_client import BlobStore, Direct, Transcoded, WriteResult


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return BlobStore(client=client, bucket="bucket")


def test_write_uploads_bytes_and_reports_length(store, client):
    result = store.write("files/a", b"hello", "text/plain")

    assert result == WriteResult(path="files/a", size=5)
    assert result.size_known
    kwargs = client.put_object.call_args.kwargs
    assert kwargs["bucket_name"] == "bucket"
    assert kwargs["object_name"] == "files/a"
    assert kwargs["length"] == 5
    assert kwargs["content_type"] == "text/plain"
    assert kwargs["data"].read() == b"hello"


def test_transcode_and_write_stores_transcoder_output(store, client):
    result = store.transcode_and_write("files/a_small", b"raw", lambda data: data.upper() + b"!")

    assert result.size == 4
    kwargs = client.put_object.call_args.kwargs
    assert kwargs["data"].read() == b"RAW!"
    assert kwargs["content_type"] == "image/png"


def test_stream_output_is_written_with_unknown_size(store, client):
    result = store.transcode_and_write("files/a_small", b"raw", lambda data: io.BytesIO(data))

    assert result.size is None
    assert not result.size_known
    kwargs = client.put_object.call_args.kwargs
    assert kwargs["length"] == -1
    assert kwargs["part_size"] > 0


def test_decode_error_from_transcoder_propagates_without_upload(store, client):
    def broken(data):
        raise DecodeError("not an image")

    with pytest.raises(DecodeError):
        store.put("files/a_small", b"raw", Transcoded(broken))
    client.put_object.assert_not_called()


def test_put_rejects_unknown_mode(store):
    with pytest.raises(TypeError):
        store.put("files/a", b"x", mode="direct")


def test_put_direct_mode(store, client):
    assert store.put("files/a", b"xy", Direct()).size == 2


def test_delete_removes_paths_in_order_and_skips_empty(store, client):
    store.delete("files/a", "", "files/a_small")

    assert client.remove_object.call_args_list == [
        call(bucket_name="bucket", object_name="files/a"),
        call(bucket_name="bucket", object_name="files/a_small"),
    ]


def test_delete_attempts_every_path_before_raising(store, client):
    client.remove_object.side_effect = [MinioException("denied"), None]

    with pytest.raises(BlobStoreError) as exc_info:
        store.delete("files/a", "files/a_small")
    assert client.remove_object.call_count == 2
    assert "files/a" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, BlobStoreError)


def test_blob_store_error_is_an_ioerror(store, client):
    client.put_object.side_effect = MinioException("quota")

    with pytest.raises(IOError):
        store.write("files/a", b"x")


def test_transport_failure_is_store_unavailable(store, client):
    client.put_object.side_effect = ProtocolError("connection reset")

    with pytest.raises(StoreUnavailable):
        store.write("files/a", b"x")


def test_list_paths_reports_modification_time(store, client):
    stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
    client.list_objects.return_value = iter([
        MagicMock(object_name="files/a", last_modified=stamp),
        MagicMock(object_name="files/b", last_modified=None),
    ])

    assert list(store.list_paths("files/")) == [("files/a", stamp), ("files/b", None)]
    client.list_objects.assert_called_once_with("bucket", prefix="files/", recursive=True)
