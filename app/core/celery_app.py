"""Celery worker for out-of-band ticket notifications.

Run with ``celery -A app.core.celery_app worker -Q notifications``.
"""

import ssl

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

import app.db.base  # noqa: F401 register all models so relationships resolve
from app.core.config import settings
from app.core.log_config import setup_logging

celery_app = Celery("campus_helpdesk", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_default_queue="notifications",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
)

if settings.REDIS_URL.startswith("rediss://"):
    tls = {"ssl_cert_reqs": ssl.CERT_NONE}
    celery_app.conf.update(broker_use_ssl=tls, redis_backend_use_ssl=tls)


@celery_setup_logging.connect
def _use_app_logging(**kwargs: object) -> None:
    setup_logging()


celery_app.autodiscover_tasks(["app.support"])
