import ssl

from celery import Celery
from celery.schedules import crontab

import app.db.base  # noqa: F401 - register all models so relationships resolve
from app.core.config import settings

_uses_tls = settings.REDIS_URL.startswith("rediss://")


def crontab_from_expression(expression: str) -> crontab:
    """Build a crontab from a standard five-field expression."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"expected 5 cron fields, got {len(fields)}: {expression!r}")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


def build_beat_schedule() -> dict[str, dict[str, object]]:
    if not settings.ENABLE_BACKGROUND_SCAN:
        return {}
    return {
        "catalog-full-sweep": {
            "task": "app.scans.tasks.run_full_sweep_task",
            "schedule": crontab_from_expression(settings.SCAN_CRON_SCHEDULE),
        },
    }


celery_app = Celery(
    "bucketmirror",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    task_track_started=True,
    result_expires=3600,
    beat_schedule=build_beat_schedule(),
)

if _uses_tls:
    celery_app.conf.update(
        broker_use_ssl={"ssl_cert_reqs": ssl.CERT_NONE},
        redis_backend_use_ssl={"ssl_cert_reqs": ssl.CERT_NONE},
    )

celery_app.autodiscover_tasks(["app.scans"])
