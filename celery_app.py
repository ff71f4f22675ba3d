"""Celery application configuration for EstateOps background tasks."""

import logging

from celery import Celery
from celery.schedules import crontab

from estateops.config import settings
from estateops.models.enums import SubjectType

celery = Celery("estateops")

logging.getLogger("estateops").setLevel(settings.log_level_name)

# Minutes past lifecycle_run_hour at which each subject type is promoted
_LIFECYCLE_RUN_MINUTES: dict[SubjectType, int] = {
    SubjectType.INVOICE: 0,
    SubjectType.PDC: 10,
    SubjectType.COMPLIANCE_SCHEDULE: 20,
    SubjectType.DOCUMENT: 30,
    SubjectType.VENDOR_DOCUMENT: 40,
}

_lifecycle_schedule = {
    f"lifecycle-{subject_type.value.lower().replace('_', '-')}-daily": {
        "task": "estateops.modules.lifecycle.tasks.run_lifecycle_rules",
        "schedule": crontab(hour=settings.lifecycle_run_hour, minute=minute),
        "args": (subject_type.value,),
    }
    for subject_type, minute in _LIFECYCLE_RUN_MINUTES.items()
}

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # --- Queue routing per job type ---
    task_routes={
        "estateops.modules.lifecycle.*": {"queue": "lifecycle"},
        "estateops.modules.notifications.*": {"queue": "notifications"},
    },
    # --- Reliability settings ---
    task_default_retry_delay=60,
    task_max_retries=3,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24 hours
    # --- Broker transport options (Redis reliability) ---
    broker_transport_options={
        "max_retries": 10,
        "interval_start": 0.2,
        "interval_step": 0.5,
        "interval_max": 5.0,
        "retry_on_timeout": True,
        "visibility_timeout": 3600,
    },
    # --- Beat schedule ---
    beat_schedule={
        **_lifecycle_schedule,
        "dispatch-notifications": {
            "task": "estateops.modules.notifications.tasks.dispatch_notifications",
            "schedule": settings.notification_dispatch_poll_seconds,
        },
    },
)

celery.autodiscover_tasks([
    "estateops.modules.lifecycle",
    "estateops.modules.notifications",
])
