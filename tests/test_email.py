"""Tests for the SMTP mail sender and message templates."""

import smtplib
from datetime import UTC, datetime
from email import message_from_string
from unittest.mock import MagicMock, patch

import pytest

from workorders.services.backup import BackupFile, BackupResult
from workorders.services.email import (
    EmailAttachment,
    EmailSender,
    EmailSendError,
    render_backup_email,
    send_backup_email,
    send_backup_test_email,
    send_deletion_confirmation_email,
    send_notification_email,
)


@pytest.fixture
def sender():
    return EmailSender(
        host="smtp.example.com",
        port=587,
        username="mailer@example.com",
        password="secret",
        from_address="noreply@example.com",
        use_ssl=False,
        timeout=5,
    )


@pytest.fixture
def smtp():
    """Patched smtplib.SMTP; yields the server object used in `with`."""
    with patch("workorders.services.email.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        server.__enter__.return_value = server
        smtp_cls.return_value = server
        yield smtp_cls, server


def sent_message(server):
    from_addr, to_addrs, raw = server.sendmail.call_args.args
    return from_addr, to_addrs, message_from_string(raw)


class TestEmailSender:
    async def test_sends_over_starttls(self, sender, smtp):
        smtp_cls, server = smtp

        await sender.send("admin@example.com", "Hello", "<p>Hi</p>")

        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=5)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer@example.com", "secret")
        from_addr, to_addrs, msg = sent_message(server)
        assert from_addr == "noreply@example.com"
        assert to_addrs == ["admin@example.com"]
        assert msg["Subject"] == "Hello"
        assert msg["To"] == "admin@example.com"

    async def test_ssl_skips_starttls(self, sender):
        sender.use_ssl = True
        with patch("workorders.services.email.smtplib.SMTP_SSL") as ssl_cls:
            server = MagicMock()
            server.__enter__.return_value = server
            ssl_cls.return_value = server

            await sender.send("admin@example.com", "Hello", "<p>Hi</p>")

        ssl_cls.assert_called_once_with("smtp.example.com", 587, timeout=5)
        server.starttls.assert_not_called()
        server.sendmail.assert_called_once()

    async def test_no_login_without_username(self, sender, smtp):
        _, server = smtp
        sender.username = ""

        await sender.send("admin@example.com", "Hello", "<p>Hi</p>")

        server.login.assert_not_called()

    async def test_unconfigured_sender_raises(self):
        sender = EmailSender(host="", from_address="", username="")

        assert sender.configured is False
        with pytest.raises(EmailSendError):
            await sender.send("admin@example.com", "Hello", "<p>Hi</p>")

    async def test_auth_failure_raises_send_error(self, sender, smtp):
        _, server = smtp
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad creds")

        with pytest.raises(EmailSendError, match="authentication"):
            await sender.send("admin@example.com", "Hello", "<p>Hi</p>")

    async def test_connection_error_raises_send_error(self, sender):
        with patch(
            "workorders.services.email.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            with pytest.raises(EmailSendError):
                await sender.send("admin@example.com", "Hello", "<p>Hi</p>")

    def test_build_message_attaches_files(self, sender, tmp_path):
        path = tmp_path / "users.csv"
        path.write_text("email\na@example.com\n")

        msg = sender.build_message(
            "admin@example.com",
            "Backup",
            "<p>Files</p>",
            [EmailAttachment("users.csv", path, "text/csv")],
        )

        parts = msg.get_payload()
        assert parts[0].get_content_type() == "text/html"
        assert parts[1].get_content_type() == "text/csv"
        assert parts[1].get_filename() == "users.csv"
        assert parts[1].get_payload(decode=True) == b"email\na@example.com\n"


class TestTemplates:
    async def test_deletion_confirmation(self, sender, smtp):
        _, server = smtp

        await send_deletion_confirmation_email(
            "admin@example.com", "WO-<7>", "482913", expire_minutes=10, sender=sender
        )

        _, _, msg = sent_message(server)
        assert msg["Subject"] == "Confirm Work Order Deletion - WO-<7>"
        html = msg.get_payload()[0].get_payload(decode=True).decode()
        assert "482913" in html
        assert "WO-&lt;7&gt;" in html
        assert "expire in 10 minutes" in html

    async def test_notification(self, sender, smtp):
        _, server = smtp

        await send_notification_email(
            "staff@example.com", "New Work Order Assigned", "Fix the roof", sender=sender
        )

        _, to_addrs, msg = sent_message(server)
        assert to_addrs == ["staff@example.com"]
        assert "Fix the roof" in msg.get_payload()[0].get_payload(decode=True).decode()

    def test_render_backup_success(self, tmp_path):
        result = BackupResult(
            success=True,
            timestamp="2026-10-19T00-00-00-000Z",
            files=[BackupFile("users_x.csv", tmp_path / "users_x.csv", "users")],
            summary="Database Backup Summary",
        )

        subject, html = render_backup_email(
            result, datetime(2026, 10, 19, 6, 0, tzinfo=UTC)
        )

        assert subject == "Database Backup - 2026-10-19"
        assert "SUCCESS" in html
        assert "users_x.csv" in html

    def test_render_backup_failure(self):
        result = BackupResult(success=False, timestamp="t", error="db down")

        subject, html = render_backup_email(
            result, datetime(2026, 10, 19, 6, 0, tzinfo=UTC)
        )

        assert subject == "Database Backup - 2026-10-19 (FAILED)"
        assert "FAILED" in html
        assert "db down" in html

    async def test_send_backup_email_attaches_files(
        self, sender, smtp, tmp_path, monkeypatch
    ):
        _, server = smtp
        monkeypatch.setattr(
            "workorders.services.email.settings.backup_email_to", "backups@example.com"
        )
        csv_path = tmp_path / "users_x.csv"
        csv_path.write_text("id\n1\n")
        summary_path = tmp_path / "backup_summary_x.txt"
        summary_path.write_text("summary")
        result = BackupResult(
            success=True,
            timestamp="x",
            files=[
                BackupFile(csv_path.name, csv_path, "users"),
                BackupFile(summary_path.name, summary_path, "summary"),
            ],
        )

        await send_backup_email(result, sender=sender)

        _, to_addrs, msg = sent_message(server)
        assert to_addrs == ["backups@example.com"]
        attachments = msg.get_payload()[1:]
        assert [a.get_content_type() for a in attachments] == ["text/csv", "text/plain"]
        assert [a.get_filename() for a in attachments] == [
            "users_x.csv",
            "backup_summary_x.txt",
        ]

    async def test_backup_test_email_defaults_to_sender_address(
        self, sender, smtp, monkeypatch
    ):
        _, server = smtp
        monkeypatch.setattr("workorders.services.email.settings.backup_email_to", "")

        await send_backup_test_email(sender=sender)

        _, to_addrs, msg = sent_message(server)
        assert to_addrs == ["noreply@example.com"]
        assert msg["Subject"] == "Backup Email Configuration Test"
