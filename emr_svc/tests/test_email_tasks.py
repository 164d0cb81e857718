"""
Unit tests for the email Celery tasks and the notifier that queues them.

Tasks are called through .run(), which executes the task body directly
with the bound task as self.
"""
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from celery_app import EMAIL_QUEUE, celery_app
from core.config import settings
from services.notification_service import EmailNotifier
from tasks.email_tasks import (
    _calculate_retry_delay,
    build_message,
    send_email,
    send_password_reset_email,
    send_welcome_email,
)


@pytest.fixture
def smtp_configured(monkeypatch):
    monkeypatch.setattr(settings, "emr_svc_smtp_host", "smtp.clinic.com")
    monkeypatch.setattr(settings, "emr_svc_smtp_user", "")
    with patch("tasks.email_tasks.smtplib.SMTP") as smtp_cls:
        yield smtp_cls


def _sent_message(smtp_cls):
    smtp = smtp_cls.return_value.__enter__.return_value
    smtp.send_message.assert_called_once()
    return smtp.send_message.call_args[0][0]


def test_build_message_has_text_and_html_parts():
    message = build_message("pat@clinic.com", "Hello", "plain body", "<p>html body</p>")
    assert message["To"] == "pat@clinic.com"
    assert [p.get_content_type() for p in message.get_payload()] == ["text/plain", "text/html"]


@pytest.mark.parametrize("to,subject", [("", "Hi"), ("no-at-sign", "Hi"), ("pat@clinic.com", "")])
def test_build_message_rejects_bad_input(to, subject):
    with pytest.raises(ValueError):
        build_message(to, subject, "body")


def test_skipped_without_smtp_host(monkeypatch):
    monkeypatch.setattr(settings, "emr_svc_smtp_host", "")
    with patch("tasks.email_tasks.smtplib.SMTP") as smtp_cls:
        result = send_email.run("pat@clinic.com", "Hi", "body")
    assert result["status"] == "skipped"
    smtp_cls.assert_not_called()


def test_send_email_delivers(smtp_configured):
    result = send_email.run("pat@clinic.com", "Hi", "body")
    assert result["status"] == "sent"
    assert _sent_message(smtp_configured)["Subject"] == "Hi"


def test_welcome_email_content(smtp_configured):
    send_welcome_email.run("pat@clinic.com", "Pat", "https://portal.clinic.com/login")
    message = _sent_message(smtp_configured)
    text = message.get_payload()[0].get_payload(decode=True).decode()
    assert "Hello Pat" in text
    assert "https://portal.clinic.com/login" in text


def test_reset_email_mentions_expiry(smtp_configured):
    send_password_reset_email.run("pat@clinic.com", "https://portal.clinic.com/reset?token=abc", 60)
    text = _sent_message(smtp_configured).get_payload()[0].get_payload(decode=True).decode()
    assert "expires in 60 minutes" in text
    assert "token=abc" in text


def test_invalid_recipient_is_not_retried(smtp_configured):
    with pytest.raises(ValueError):
        send_email.run("nobody", "Hi", "body")
    smtp_configured.assert_not_called()


def test_transient_failure_is_raised_for_retry(smtp_configured):
    smtp = smtp_configured.return_value.__enter__.return_value
    smtp.send_message.side_effect = smtplib.SMTPServerDisconnected("gone")
    # Called directly, Task.retry re-raises the original exception
    with pytest.raises(smtplib.SMTPServerDisconnected):
        send_email.run("pat@clinic.com", "Hi", "body")


def test_retry_delay_backs_off():
    assert [_calculate_retry_delay(n) for n in range(3)] == [1, 2, 4]


def test_notifier_queues_welcome_with_login_url():
    notifier = EmailNotifier(frontend_url="https://portal.clinic.com/")
    with patch("tasks.email_tasks.send_welcome_email") as task:
        task.delay.return_value = MagicMock(id="task-1")
        assert notifier.send_welcome("pat@clinic.com", "Pat") == "task-1"
    task.delay.assert_called_once_with(to="pat@clinic.com", first_name="Pat",
                                       login_url="https://portal.clinic.com/login")


def test_notifier_builds_reset_link():
    notifier = EmailNotifier(frontend_url="https://portal.clinic.com")
    with patch("tasks.email_tasks.send_password_reset_email") as task:
        notifier.send_password_reset("pat@clinic.com", "tok/en", 60)
    assert task.delay.call_args.kwargs["reset_url"] == "https://portal.clinic.com/reset-password?token=tok%2Fen"


def test_notifier_swallows_broker_errors():
    notifier = EmailNotifier(frontend_url="https://portal.clinic.com")
    with patch("tasks.email_tasks.send_welcome_email") as task:
        task.delay.side_effect = ConnectionError("redis down")
        assert notifier.send_welcome("pat@clinic.com") is None


@pytest.mark.parametrize("task", [send_email, send_welcome_email, send_password_reset_email])
def test_email_tasks_route_to_email_queue(task):
    route = celery_app.amqp.router.route({}, task.name)
    assert route["queue"].name == EMAIL_QUEUE
