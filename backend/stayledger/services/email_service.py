# backend/stayledger/services/email_service.py
from __future__ import annotations

import logging
import os
import re
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..config import settings
from ..domain.periods import month_name

logger = logging.getLogger(__name__)


class EmailService:
    """SMTP delivery for owner reports."""

    def __init__(self):
        self.enabled = settings.email_enabled
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.from_email = settings.from_email

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachment_path: Optional[str] = None,
        attachment_name: Optional[str] = None,
    ) -> bool:
        """Send one message; returns False (and logs) instead of raising."""
        if not self.enabled:
            logger.warning("email_disabled: not sending %r to %s", subject, to_email)
            return False

        try:
            msg = MIMEMultipart("mixed")
            msg["Subject"] = subject
            msg["From"] = self.from_email
            msg["To"] = to_email

            body = MIMEMultipart("alternative")
            body.attach(MIMEText(text_content or re.sub(r"<[^>]+>", "", html_content), "plain"))
            body.attach(MIMEText(html_content, "html"))
            msg.attach(body)

            if attachment_path:
                with open(attachment_path, "rb") as fh:
                    part = MIMEApplication(fh.read(), _subtype="pdf")
                part.add_header(
                    "Content-Disposition",
                    "attachment",
                    filename=attachment_name or os.path.basename(attachment_path),
                )
                msg.attach(part)

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password or "")
                server.send_message(msg)

            logger.info("Email sent successfully to %s", to_email)
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False

    def send_report_email(
        self,
        *,
        to_email: str,
        owner_name: str,
        month: int,
        year: int,
        attachment_path: str,
        attachment_name: str,
    ) -> bool:
        period = f"{month_name(month)} {year}"
        subject = f"Monthly Expense Report - {period}"
        company = settings.company_name

        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #1e3a5f;">Monthly Expense Report</h2>
            <p>Dear {owner_name},</p>
            <p>Please find attached your expense report for <strong>{period}</strong>.</p>
            <p>The report lists every expense billed to your properties during the month.
            Reply to this email if you have any questions.</p>
            <p>Best regards,<br>{company}</p>
        </body>
        </html>
        """
        text_content = (
            f"Dear {owner_name},\n\n"
            f"Please find attached your expense report for {period}.\n\n"
            f"Best regards,\n{company}\n"
        )
        return self.send_email(
            to_email,
            subject,
            html_content,
            text_content=text_content,
            attachment_path=attachment_path,
            attachment_name=attachment_name,
        )


def get_email_sender() -> EmailService:
    return EmailService()
