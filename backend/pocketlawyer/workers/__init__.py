from celery import Celery
import structlog
from celery.signals import after_setup_logger, after_setup_task_logger
from pocketlawyer.config import settings
from pocketlawyer.logging import setup_logging

# Initialize logging for the main process
setup_logging()
logger = structlog.get_logger()


@after_setup_logger.connect
@after_setup_task_logger.connect
def setup_celery_logging(logger, **kwargs):
    """Ensure structlog is setup for Celery workers."""
    setup_logging()


celery_app = Celery(
    "pocketlawyer_mail",
    broker=settings.get_redis_url,
    backend=settings.get_redis_url,
)

celery_app.conf.update(
    worker_hijack_root_logger=False,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_time_limit=600,  # 10 minutes max per sweep
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    broker_connection_retry_on_startup=True,
    task_ignore_result=True,
    # Replaces the external cron: one sweep per interval
    beat_schedule={
        "scheduler-sweep": {
            "task": "scheduler.run_sweep",
            "schedule": float(settings.sweep_interval_seconds),
            # A late sweep is pointless once the next one is queued
            "options": {"expires": float(settings.sweep_interval_seconds)},
        },
    },
)

# Automatic import of tasks
celery_app.autodiscover_tasks(["pocketlawyer.workers"], related_name="scheduler_tasks")
