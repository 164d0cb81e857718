"""
Celery tasks for outbound email.

Note: Celery tasks run outside the FastAPI request context, so they cannot
use FastAPI's Depends() mechanism. SMTP settings are read from core.config
directly.

When EMR_SVC_SMTP_HOST is empty the message is logged and the task reports
``{"status": "skipped"}`` instead of failing.

Observability:
    - Task success/failure metrics are recorded via MetricsCollector
    - Task IDs are logged for traceability
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from celery import shared_task

from core.config import settings
from core.datetime_utils import now_iso

logger = logging.getLogger(__name__)


def _record_task_metrics(success: bool) -> None:
    """
    Record task completion metrics.

    Safe to call even if metrics collector is not initialized (e.g., during testing).
    """
    try:
        from core.middleware import get_metrics_collector
        get_metrics_collector().record_task_result(success=success)
    except Exception as e:
        # Metrics must never fail the task
        logger.warning(f"Failed to record task metrics: {e}")


# Constants
DEFAULT_RETRY_BASE_DELAY = 2  # seconds
MAX_RETRIES = 3
# Bad addresses and bad credentials won't be fixed by retrying
NON_RETRYABLE_ERRORS = (ValueError, smtplib.SMTPRecipientsRefused, smtplib.SMTPAuthenticationError)


def _calculate_retry_delay(retry_count: int, base_delay: int = DEFAULT_RETRY_BASE_DELAY) -> int:
    """
    Calculate exponential backoff delay for retries.

    Args:
        retry_count: Current retry attempt number (0-indexed).
        base_delay: Base delay in seconds.

    Returns:
        int: Delay in seconds (1, 2, 4 with the default base).
    """
    return base_delay ** retry_count


def build_message(to: str, subject: str, text_body: str, html_body: Optional[str] = None) -> MIMEMultipart:
    """
    Build a MIME message with a plain text part and an optional HTML part.

    Raises:
        ValueError: If the recipient or subject is empty.
    """
    if not to or "@" not in to:
        raise ValueError(f"Invalid recipient address: '{to}'")
    if not subject:
        raise ValueError("Email subject cannot be empty")

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = settings.emr_svc_smtp_from
    message["To"] = to
    message.attach(MIMEText(text_body, "plain", "utf-8"))
    if html_body:
        message.attach(MIMEText(html_body, "html", "utf-8"))
    return message


def deliver_message(message: MIMEMultipart) -> None:
    """Send a message through the configured SMTP server."""
    with smtplib.SMTP(settings.emr_svc_smtp_host, settings.emr_svc_smtp_port, timeout=30) as smtp:
        if settings.emr_svc_smtp_use_tls:
            smtp.starttls()
        if settings.emr_svc_smtp_user:
            smtp.login(settings.emr_svc_smtp_user, settings.emr_svc_smtp_password)
        smtp.send_message(message)


def _send(task, to: str, subject: str, text_body: str, html_body: Optional[str] = None) -> Dict[str, Any]:
    """
    Shared body of the email tasks: build, deliver, record metrics, retry.

    Args:
        task: The bound Celery task (for request info and retry).
    """
    try:
        message = build_message(to, subject, text_body, html_body)

        if not settings.emr_svc_smtp_host:
            logger.info(
                f"SMTP not configured; skipping email '{subject}' to {to}",
                extra={"task_id": task.request.id, "recipient": to}
            )
            return {"status": "skipped", "to": to, "subject": subject}

        deliver_message(message)
        logger.info(
            f"Sent email '{subject}' to {to}",
            extra={"task_id": task.request.id, "recipient": to}
        )
        _record_task_metrics(success=True)
        return {"status": "sent", "to": to, "subject": subject, "sent_at": now_iso()}

    except NON_RETRYABLE_ERRORS as exc:
        logger.error(
            f"Non-retryable error sending email to {to}: {exc}",
            extra={"task_id": task.request.id, "recipient": to, "error_type": type(exc).__name__}
        )
        _record_task_metrics(success=False)
        raise

    except Exception as exc:
        # Only record failure if we've exhausted retries
        if task.request.retries >= MAX_RETRIES:
            logger.error(
                f"Max retries exhausted sending email to {to}: {exc}",
                extra={"task_id": task.request.id, "recipient": to, "retries": task.request.retries}
            )
            _record_task_metrics(success=False)
        else:
            logger.warning(
                f"Retrying email to {to}: {exc}",
                extra={"task_id": task.request.id, "recipient": to, "retry_count": task.request.retries + 1}
            )

        # Retry with exponential backoff
        raise task.retry(exc=exc, countdown=_calculate_retry_delay(task.request.retries))


@shared_task(bind=True, max_retries=MAX_RETRIES)
def send_email(self, to: str, subject: str, text_body: str, html_body: Optional[str] = None) -> Dict[str, Any]:
    """
    Send an arbitrary email.

    Args:
        self: Celery task instance (bound task).
        to: Recipient address.
        subject: Subject line.
        text_body: Plain text body.
        html_body: Optional HTML alternative.

    Returns:
        dict: {"status": "sent" | "skipped", "to": ..., "subject": ...}

    Raises:
        ValueError: If the recipient or subject is invalid (non-retryable).
        Retry: On transient SMTP failures, up to MAX_RETRIES times with
            exponential backoff.
    """
    return _send(self, to, subject, text_body, html_body)


@shared_task(bind=True, max_retries=MAX_RETRIES)
def send_welcome_email(self, to: str, first_name: Optional[str], login_url: str) -> Dict[str, Any]:
    """Welcome a newly registered patient and point them at the login page."""
    name = first_name or "there"
    text_body = (
        f"Hello {name},\n\n"
        "Your patient account has been created. You can sign in with this email "
        f"address at {login_url}\n\n"
        "If you did not expect this message, please contact the clinic."
    )
    html_body = (
        f"<p>Hello {name},</p>"
        "<p>Your patient account has been created. You can sign in with this email "
        f'address at <a href="{login_url}">{login_url}</a>.</p>'
        "<p>If you did not expect this message, please contact the clinic.</p>"
    )
    return _send(self, to, "Welcome to the clinic portal", text_body, html_body)


@shared_task(bind=True, max_retries=MAX_RETRIES)
def send_password_reset_email(self, to: str, reset_url: str, ttl_minutes: int) -> Dict[str, Any]:
    """Send a password reset link valid for ``ttl_minutes``."""
    text_body = (
        "We received a request to reset your password.\n\n"
        f"Open this link to choose a new password: {reset_url}\n\n"
        f"The link expires in {ttl_minutes} minutes. If you did not request a reset, "
        "you can ignore this email."
    )
    html_body = (
        "<p>We received a request to reset your password.</p>"
        f'<p><a href="{reset_url}">Choose a new password</a></p>'
        f"<p>The link expires in {ttl_minutes} minutes. If you did not request a reset, "
        "you can ignore this email.</p>"
    )
    return _send(self, to, "Password reset request", text_body, html_body)
