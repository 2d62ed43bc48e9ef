from celery import Celery
from common.config.settings import settings

broker = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/0"
backend = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/1"

RECONCILE_TASK = "file_service.reconcile_storage"

celery = Celery(
    "file_service_tasks",
    broker=broker,
    backend=backend,
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    result_expires=3600,
    # run with `celery -A services.file_service.celery_app beat`
    beat_schedule={
        "reconcile-storage": {
            "task": RECONCILE_TASK,
            "schedule": settings.RECONCILE_INTERVAL_SECONDS,
            "kwargs": {"remove_orphans": settings.RECONCILE_REMOVE_ORPHANS},
        },
    },
)

celery.autodiscover_tasks(["services.file_service"])
