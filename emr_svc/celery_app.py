"""
Celery worker for outbound email.

The API never talks to SMTP directly: EmailNotifier queues the tasks in
tasks/email_tasks.py on Redis and this worker delivers them.

    send_email                   generic multipart message
    send_welcome_email           login link for a newly registered patient
    send_password_reset_email    single-use reset link with its expiry

Failed sends are retried with exponential backoff (see
tasks.email_tasks.MAX_RETRIES); bad recipients and SMTP auth errors are
not retried. All email tasks are routed to the ``emails`` queue.

Start a worker from the emr_svc directory:
    celery -A celery_app worker -Q emails --loglevel=info
"""
from celery import Celery

from core.config import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_SERIALIZER,
    CELERY_RESULT_SERIALIZER,
    CELERY_ACCEPT_CONTENT,
    CELERY_TIMEZONE,
    CELERY_ENABLE_UTC,
)

EMAIL_QUEUE = "emails"

celery_app = Celery(
    "emr_svc",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["tasks.email_tasks"]
)

celery_app.conf.update(
    task_serializer=CELERY_TASK_SERIALIZER,
    result_serializer=CELERY_RESULT_SERIALIZER,
    accept_content=CELERY_ACCEPT_CONTENT,
    timezone=CELERY_TIMEZONE,
    enable_utc=CELERY_ENABLE_UTC,
    task_routes={"tasks.email_tasks.*": {"queue": EMAIL_QUEUE}},
    # A message is acked only after the SMTP send, so a killed worker redelivers it
    task_acks_late=True,
    # SMTP round trips are slow; don't let one worker hoard queued emails
    worker_prefetch_multiplier=1,
)
