# services/file_service/tasks.py
from datetime import datetime, timedelta, timezone

from .celery_app import celery, RECONCILE_TASK
from common.config.settings import settings
from common.utils.logger import get_logger
from .minio_client import BlobStore
from .paths import THUMBNAIL_SUFFIX
from .repository import MetadataStore

logger = get_logger("file_service_tasks")


def _utcnow():
    return datetime.now(timezone.utc)


def find_inconsistencies(blobs: BlobStore, metadata: MetadataStore, base_path: str = None,
                         min_age_seconds: int = None, now=None) -> dict:
    """
    Compares the objects under the bucket base path with the metadata records.

    orphaned_blobs: objects no record refers to (as primary or as its thumbnail)
    dangling_records: ids whose primary object is missing

    Objects modified less than `min_age_seconds` ago are never reported as
    orphans: uploads write their blobs before the record commits, so a young
    unreferenced object may still be waiting for its record.
    """
    base_path = settings.BUCKET_BASE_PATH if base_path is None else base_path
    if min_age_seconds is None:
        min_age_seconds = settings.RECONCILE_MIN_AGE_SECONDS
    cutoff = (now or _utcnow()) - timedelta(seconds=min_age_seconds)

    stored = set()
    settled = set()
    for path, last_modified in blobs.list_paths(base_path):
        stored.add(path)
        # objects without a timestamp are treated as young
        if last_modified is not None and last_modified <= cutoff:
            settled.add(path)

    referenced = set()
    dangling = []
    for file_id, path in metadata.all_paths():
        referenced.add(path)
        referenced.add(path + THUMBNAIL_SUFFIX)
        if path not in stored:
            dangling.append(file_id)

    skipped = len((stored - settled) - referenced)
    if skipped:
        logger.info(f"Skipped {skipped} unreferenced object(s) younger than {min_age_seconds}s")

    orphaned = sorted(settled - referenced)
    return {"orphaned_blobs": orphaned, "dangling_records": sorted(dangling)}


def reconcile(blobs: BlobStore, metadata: MetadataStore, remove_orphans: bool = False, base_path: str = None,
              min_age_seconds: int = None, now=None) -> dict:
    report = find_inconsistencies(blobs, metadata, base_path, min_age_seconds, now)
    logger.info(
        f"Reconciliation found {len(report['orphaned_blobs'])} orphaned blob(s) "
        f"and {len(report['dangling_records'])} dangling record(s)"
    )
    for file_id in report["dangling_records"]:
        logger.warning(f"Record {file_id} points at a missing blob")

    removed = []
    if remove_orphans:
        for path in report["orphaned_blobs"]:
            blobs.delete(path)
            removed.append(path)
    report["removed"] = removed
    return report


@celery.task(bind=True, name=RECONCILE_TASK)
def reconcile_storage(self, remove_orphans: bool = False):
    """
    Offline sweep for blobs and records left inconsistent by interrupted operations.
    Nothing on the request path rolls back, so this is the repair route.
    """
    logger.info(f"reconcile_storage: starting (remove_orphans={remove_orphans})")
    return reconcile(BlobStore(), MetadataStore(), remove_orphans=remove_orphans)
