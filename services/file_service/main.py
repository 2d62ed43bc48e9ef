# services/file_service/main.py
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response

from common.config.settings import settings
from common.utils.logger import get_logger
from .exceptions import DecodeError, InvalidInput, NotFound, StoreError, UploadBatchError
from .minio_client import BlobStore
from .repository import MetadataStore
from .schemas import FileListResponse, FileUpdateResponse
from .service import FileService, UploadItem

app = FastAPI(title="File Service")
logger = get_logger("file_service.api")


@lru_cache(maxsize=1)
def get_file_service() -> FileService:
    return FileService(BlobStore(), MetadataStore())


def parse_page_size(size_param: str) -> int:
    if not size_param:
        return settings.PAGE_SIZE
    try:
        size = int(size_param)
    except ValueError:
        raise InvalidInput(f"Invalid page size: {size_param!r}")
    if size <= 0:
        raise InvalidInput(f"Page size must be positive: {size}")
    return size


async def required_tags(request: Request) -> str:
    """
    The `tags` form field of an update must be present. An empty value is
    allowed and clears the tags, so presence is checked on the raw form.
    """
    form = await request.form()
    if "tags" not in form:
        raise InvalidInput("Missing form field: tags")
    tags = form["tags"]
    if not isinstance(tags, str):
        raise InvalidInput("Form field tags must be text")
    return tags


def _to_item(upload: UploadFile) -> UploadItem:
    return UploadItem(
        filename=upload.filename or "",
        data=upload.file.read(),
        content_type=upload.content_type or "application/octet-stream",
    )


# ---------------- error mapping ----------------
# Failures answer with an empty body and a status code only.

@app.exception_handler(RequestValidationError)
def on_validation_error(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.errors()}")
    return Response(status_code=400)


@app.exception_handler(InvalidInput)
def on_invalid_input(request: Request, exc: InvalidInput):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return Response(status_code=400)


@app.exception_handler(NotFound)
def on_not_found(request: Request, exc: NotFound):
    return Response(status_code=404)


@app.exception_handler(DecodeError)
def on_decode_error(request: Request, exc: DecodeError):
    return Response(status_code=400)


@app.exception_handler(StoreError)
def on_store_error(request: Request, exc: StoreError):
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return Response(status_code=500)


@app.exception_handler(UploadBatchError)
def on_upload_batch_error(request: Request, exc: UploadBatchError):
    logger.error(
        f"Batch upload aborted at {exc.filename}; persisted before failure: "
        f"{[v.id for v in exc.persisted]}"
    )
    if isinstance(exc.cause, DecodeError):
        return Response(status_code=400)
    return Response(status_code=500)


# ---------------- routes ----------------

@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.post("/api/files", status_code=201, response_model=FileListResponse)
def upload_files(
    files: List[UploadFile] = File(...),
    tags: str = Form(""),
    service: FileService = Depends(get_file_service),
):
    """Uploads one or more files sharing the same tags."""
    items = [_to_item(f) for f in files]
    views = service.upload(items, tags)
    return FileListResponse(files=views)


@app.put("/api/files/{file_id}", response_model=FileUpdateResponse)
def update_file(
    file_id: str,
    tags: str = Depends(required_tags),
    file: Optional[UploadFile] = File(None),
    service: FileService = Depends(get_file_service),
):
    """Replaces the tags of a file, and its content when `file` is sent."""
    new_file = _to_item(file) if file is not None and file.filename else None
    view = service.update(file_id, tags, new_file)
    return FileUpdateResponse(file=view)


@app.get("/api/files", response_model=FileListResponse)
def list_files(
    tags: str = "",
    order_no: str = Query("", alias="orderNo"),
    size: str = "",
    service: FileService = Depends(get_file_service),
):
    """Lists files carrying all `tags`, most recently touched first."""
    limit = parse_page_size(size)
    views = service.list(tags, order_no or None, limit)
    return FileListResponse(files=views)


@app.delete("/api/files/{file_id}", status_code=204)
def delete_file(file_id: str, service: FileService = Depends(get_file_service)):
    service.delete(file_id)
    return Response(status_code=204)
