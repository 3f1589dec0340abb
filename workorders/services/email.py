"""Outgoing mail over SMTP.

Used for deletion confirmation codes and for delivering database backups.
smtplib is blocking, so each send runs in a worker thread.
"""

import asyncio
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from pathlib import Path
from zoneinfo import ZoneInfo

from workorders.config import settings
from workorders.logging_config import get_logger

logger = get_logger(__name__)

APP_NAME = "Work Management System"


class EmailSendError(Exception):
    """Mail could not be handed to the SMTP server."""


@dataclass(frozen=True)
class EmailAttachment:
    """A file to attach to an outgoing message."""

    filename: str
    path: Path
    content_type: str = "application/octet-stream"


class EmailSender:
    """SMTP client configured from settings.

    Args:
        from_address: Overrides the configured sender address.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        from_address: str | None = None,
        use_ssl: bool | None = None,
        timeout: int | None = None,
    ):
        self.host = host if host is not None else settings.smtp_host
        self.port = port if port is not None else settings.smtp_port
        self.username = username if username is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password
        self.from_address = from_address or settings.smtp_from or self.username
        self.use_ssl = use_ssl if use_ssl is not None else settings.smtp_use_ssl
        self.timeout = timeout if timeout is not None else settings.smtp_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.host and self.from_address)

    def build_message(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        for attachment in attachments or []:
            maintype, _, subtype = attachment.content_type.partition("/")
            part = MIMEBase(maintype, subtype or "octet-stream")
            part.set_payload(attachment.path.read_bytes())
            encoders.encode_base64(part)
            part.add_header(
                "Content-Disposition", "attachment", filename=attachment.filename
            )
            msg.attach(part)

        return msg

    def _send_sync(self, to: str, msg: MIMEMultipart) -> None:
        if self.use_ssl:
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with server:
            if not self.use_ssl:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [to], msg.as_string())

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> None:
        """Send one HTML message.

        Raises:
            EmailSendError: SMTP is not configured, an attachment could not
                be read, or the server rejected the message.
        """
        if not self.configured:
            logger.warning("SMTP not configured, cannot send email", to=to)
            raise EmailSendError("SMTP is not configured (SMTP_HOST/SMTP_FROM)")

        try:
            msg = self.build_message(to, subject, html_body, attachments)
            await asyncio.to_thread(self._send_sync, to, msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP login failed", host=self.host, error=str(e))
            raise EmailSendError(f"SMTP authentication failed: {e}") from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Failed to send email",
                to=to,
                subject=subject,
                error=str(e),
            )
            raise EmailSendError(f"Failed to send email: {e}") from e

        logger.info(
            "Email sent",
            to=to,
            subject=subject,
            attachments=len(attachments or []),
        )


def get_backup_sender() -> EmailSender:
    """Sender used for backup delivery (may use a dedicated from address)."""
    return EmailSender(from_address=settings.backup_email_from or None)


def _local_now(timezone: str | None = None) -> datetime:
    return datetime.now(ZoneInfo(timezone or settings.backup_timezone))


def _footer() -> str:
    return (
        '<hr style="margin: 30px 0;">'
        '<p style="color: #6b7280; font-size: 12px;">'
        f"{APP_NAME} - Automated Email</p>"
    )


async def send_deletion_confirmation_email(
    to_email: str,
    work_order_number: str,
    code: str,
    expire_minutes: int = 10,
    sender: EmailSender | None = None,
) -> None:
    """Email a deletion verification code.

    Raises:
        EmailSendError: If the message could not be sent.
    """
    sender = sender or EmailSender()
    number = escape(work_order_number)
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #dc2626;">Work Order Deletion Confirmation</h2>
  <p>You have requested to delete the following work order:</p>
  <div style="background-color: #f3f4f6; padding: 15px; border-radius: 5px; margin: 20px 0;">
    <strong>Work Order Number:</strong> {number}
  </div>
  <p>To confirm this deletion, please use the following verification code:</p>
  <div style="background-color: #dc2626; color: white; padding: 15px; text-align: center; border-radius: 5px; margin: 20px 0;">
    <h3 style="margin: 0; font-size: 24px; letter-spacing: 3px;">{code}</h3>
  </div>
  <p style="color: #dc2626; font-weight: bold;">Warning: This action cannot be undone!</p>
  <p>If you did not request this deletion, please ignore this email and contact your administrator immediately.</p>
  <p style="color: #6b7280; font-size: 12px;">This verification code will expire in {expire_minutes} minutes.</p>
  {_footer()}
</div>
"""
    await sender.send(
        to_email,
        f"Confirm Work Order Deletion - {work_order_number}",
        html,
    )


def render_backup_email(backup_result, local_time: datetime) -> tuple[str, str]:
    """Build (subject, html) for a backup delivery or failure notice."""
    when = local_time.strftime("%A, %B %d, %Y %I:%M:%S %p")
    files = backup_result.files or []

    if backup_result.success:
        status_html = '<span style="color: #059669; font-weight: bold;">SUCCESS</span>'
        file_items = "".join(
            f'<li style="margin: 5px 0;">{escape(f.name)} '
            f'<span style="color: #78716c; font-size: 12px;">({escape(f.collection)})</span></li>'
            for f in files
        ) or "<li>No files attached</li>"
        details_html = f"""
  <div style="background-color: #f0fdf4; border: 1px solid #22c55e; border-radius: 6px; padding: 20px; margin-bottom: 25px;">
    <h3 style="color: #15803d; margin: 0 0 15px 0; font-size: 16px;">Backup Details</h3>
    <div style="color: #166534; font-family: 'Courier New', monospace; font-size: 14px; white-space: pre-line;">{escape(backup_result.summary or "No summary available")}</div>
  </div>
  <div style="background-color: #fefce8; border: 1px solid #eab308; border-radius: 6px; padding: 20px; margin-bottom: 25px;">
    <h3 style="color: #a16207; margin: 0 0 15px 0; font-size: 16px;">Attached Files</h3>
    <ul style="color: #92400e; margin: 0; padding-left: 20px;">{file_items}</ul>
  </div>
"""
    else:
        status_html = '<span style="color: #dc2626; font-weight: bold;">FAILED</span>'
        details_html = f"""
  <div style="background-color: #fef2f2; border: 1px solid #ef4444; border-radius: 6px; padding: 20px; margin-bottom: 25px;">
    <h3 style="color: #dc2626; margin: 0 0 15px 0; font-size: 16px;">Backup Failed</h3>
    <p style="color: #991b1b; margin: 0;">Error: {escape(backup_result.error or "Unknown error occurred")}</p>
  </div>
"""

    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; background-color: #f9fafb; padding: 20px;">
  <div style="text-align: center; margin-bottom: 30px;">
    <h1 style="color: #1f2937; margin: 0; font-size: 28px;">Database Backup</h1>
    <p style="color: #6b7280; margin: 10px 0 0 0; font-size: 16px;">{APP_NAME}</p>
  </div>
  <div style="background-color: #f0f9ff; border: 1px solid #0ea5e9; border-radius: 6px; padding: 20px; margin-bottom: 25px;">
    <p style="margin: 8px 0;"><strong>Date &amp; Time:</strong> {when}</p>
    <p style="margin: 8px 0;"><strong>Status:</strong> {status_html}</p>
    <p style="margin: 8px 0;"><strong>Files Created:</strong> {len(files)}</p>
  </div>
  {details_html}
  {_footer()}
</div>
"""
    outcome = "" if backup_result.success else " (FAILED)"
    subject = f"Database Backup - {local_time.strftime('%Y-%m-%d')}{outcome}"
    return subject, html


async def send_backup_email(backup_result, sender: EmailSender | None = None) -> None:
    """Deliver a backup (or its failure notice) to the backup mailbox.

    Raises:
        EmailSendError: If the message could not be sent.
    """
    sender = sender or get_backup_sender()
    subject, html = render_backup_email(backup_result, _local_now())
    attachments = [
        EmailAttachment(
            filename=f.name,
            path=f.path,
            content_type="text/csv" if f.name.endswith(".csv") else "text/plain",
        )
        for f in (backup_result.files or [])
    ]
    recipient = settings.backup_email_to or sender.from_address
    await sender.send(recipient, subject, html, attachments=attachments)


async def send_backup_test_email(sender: EmailSender | None = None) -> None:
    """Send a short message proving the backup mailbox settings work."""
    sender = sender or get_backup_sender()
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #059669;">Backup Email Test</h2>
  <p>This is a test email to verify the backup email configuration is working correctly.</p>
  <p><strong>Time:</strong> {_local_now().strftime("%Y-%m-%d %H:%M:%S %Z")}</p>
  <p><strong>From:</strong> {escape(sender.from_address)}</p>
  <p><strong>Server:</strong> {escape(sender.host)}:{sender.port}</p>
</div>
"""
    recipient = settings.backup_email_to or sender.from_address
    await sender.send(recipient, "Backup Email Configuration Test", html)


async def send_notification_email(
    to_email: str,
    subject: str,
    message: str,
    sender: EmailSender | None = None,
) -> None:
    """Send a short plain notice (e.g. a work order assignment).

    Raises:
        EmailSendError: If the message could not be sent.
    """
    sender = sender or EmailSender()
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #1f2937;">{escape(subject)}</h2>
  <p>{escape(message)}</p>
  {_footer()}
</div>
"""
    await sender.send(to_email, subject, html)
