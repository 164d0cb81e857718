"""
Outbound notifications.

EmailNotifier is the seam between request handling and the Celery email
tasks: services call it, and it queues the task. Failing to queue is
logged and never fails the request that triggered the email.
"""
import logging
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Queues welcome and password reset emails on the Celery broker."""

    def __init__(self, frontend_url: str):
        """
        Args:
            frontend_url: Base URL of the web client, used to build links.
        """
        self._frontend_url = frontend_url.rstrip("/")

    def send_welcome(self, email: str, first_name: Optional[str] = None) -> Optional[str]:
        """
        Queue a welcome email.

        Returns:
            The Celery task id, or None if queuing failed.
        """
        from tasks.email_tasks import send_welcome_email

        try:
            task = send_welcome_email.delay(
                to=email, first_name=first_name, login_url=f"{self._frontend_url}/login"
            )
            logger.info(f"Queued welcome email task {task.id} for {email}")
            return task.id
        except Exception as e:
            logger.error(f"Failed to queue welcome email for {email}: {e}", exc_info=True)
            return None

    def send_password_reset(self, email: str, token: str, ttl_minutes: int) -> Optional[str]:
        """
        Queue a password reset email carrying a link with ``token``.

        Returns:
            The Celery task id, or None if queuing failed.
        """
        from tasks.email_tasks import send_password_reset_email

        reset_url = f"{self._frontend_url}/reset-password?token={quote(token)}"
        try:
            task = send_password_reset_email.delay(to=email, reset_url=reset_url, ttl_minutes=ttl_minutes)
            logger.info(f"Queued password reset email task {task.id} for {email}")
            return task.id
        except Exception as e:
            logger.error(f"Failed to queue password reset email for {email}: {e}", exc_info=True)
            return None
