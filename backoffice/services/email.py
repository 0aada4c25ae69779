"""
Email Service.
Sends invoice emails to shops, with an optional PDF attachment.
"""

import logging
import smtplib
from decimal import Decimal
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.mime.application import MIMEApplication

from backoffice.core.config import settings
from backoffice.core.exceptions import NotificationError


logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.email_from = settings.EMAIL_FROM

    def _is_configured(self) -> bool:
        """Check if email is configured."""
        return bool(self.smtp_user and self.smtp_password)

    def _create_message(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> MIMEMultipart:
        """Create email message."""
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = self.email_from
        msg['To'] = to_email

        body = MIMEMultipart('alternative')
        if body_text:
            body.attach(MIMEText(body_text, 'plain', 'utf-8'))
        body.attach(MIMEText(body_html, 'html', 'utf-8'))
        msg.attach(body)

        return msg

    def _attach_pdf(self, msg: MIMEMultipart, content: bytes, filename: str) -> None:
        """Attach PDF bytes to message."""
        pdf = MIMEApplication(content, _subtype='pdf')
        pdf.add_header('Content-Disposition', 'attachment', filename=filename)
        msg.attach(pdf)

    def _send(self, msg: MIMEMultipart, to_email: str) -> None:
        """Send email via SMTP."""
        if not self._is_configured():
            logger.warning("Email is not configured, message not sent")
            raise NotificationError("Email service is not configured")

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.email_from, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise NotificationError(f"Failed to send email to {to_email}") from e

        logger.info(f"Email sent to {to_email}")

    async def send_invoice(
        self,
        to_email: str,
        invoice_number: str,
        shop_name: str,
        total_amount: Decimal,
        attachment: bytes | None = None,
    ) -> None:
        """
        Send an invoice by email to a shop.

        Args:
            to_email: Recipient address
            invoice_number: Invoice number, used in subject and filename
            shop_name: Shop the invoice is addressed to
            total_amount: Invoice total
            attachment: Rendered invoice PDF, if any

        Raises:
            NotificationError: Email not configured or SMTP failure
        """
        subject = f"Invoice {invoice_number} - {settings.APP_NAME}"
        if attachment:
            intro = f"Please find your invoice {invoice_number} attached."
        else:
            intro = f"Your invoice {invoice_number} has been issued."

        body_html = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
                .header {{ background: #2563EB; color: white; padding: 20px; text-align: center; }}
                .content {{ padding: 20px; }}
                .amount {{ font-size: 24px; font-weight: bold; color: #2563EB; }}
            </style>
        </head>
        <body>
            <div class="header">
                <h1>Invoice {invoice_number}</h1>
            </div>
            <div class="content">
                <p>Hello {shop_name},</p>

                <p>{intro}</p>

                <p class="amount">Total amount: ${total_amount:.2f}</p>

                <p>Thank you for your business.</p>
            </div>
        </body>
        </html>
        """

        body_text = f"""
        Invoice {invoice_number}

        Hello {shop_name},

        {intro}

        Total amount: ${total_amount:.2f}

        Thank you for your business.
        """

        msg = self._create_message(to_email, subject, body_html, body_text)
        if attachment:
            self._attach_pdf(msg, attachment, f"invoice_{invoice_number}.pdf")

        self._send(msg, to_email)
