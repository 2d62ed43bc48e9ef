# services/file_service/paths.py
import os
import time

from common.config.settings import settings

IMAGE_TYPES = (".jpg", ".jpeg", ".png", ".gif")
THUMBNAIL_SUFFIX = "_small"


def primary_path(file_id: str, base_path: str = None) -> str:
    base = settings.BUCKET_BASE_PATH if base_path is None else base_path
    return f"{base}{file_id}"


def thumbnail_path(path: str) -> str:
    return path + THUMBNAIL_SUFFIX


def resource_url(path: str, resource_base: str = None) -> str:
    base = settings.RESOURCE_BASE_PATH if resource_base is None else resource_base
    return f"{base}{path}"


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def order_no(file_id: str, timestamp_ms: int = None) -> str:
    """Sort key: `<millisecond timestamp>-<id>`, recomputed on every mutation."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"{timestamp_ms}-{file_id}"


def is_image(filename: str) -> bool:
    ext = os.path.splitext(filename or "")[1].lower()
    return ext in IMAGE_TYPES
