"""
Email Service for Matchday Predictor

Sends the password reset message. Delivery failures are logged and
reported as False, never raised to the request.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, url_for

logger = logging.getLogger(__name__)


class EmailService:
    """Handles all email sending functionality"""

    def __init__(self):
        self.smtp_server = current_app.config.get("MAIL_SERVER") or "localhost"
        self.smtp_port = current_app.config.get("MAIL_PORT", 587)
        self.smtp_username = current_app.config.get("MAIL_USERNAME")
        self.smtp_password = current_app.config.get("MAIL_PASSWORD")
        self.from_email = current_app.config.get("FROM_EMAIL") or "noreply@matchday-predictor.local"
        self.from_name = current_app.config.get("FROM_NAME", "Matchday Predictor")
        self.use_tls = current_app.config.get("MAIL_USE_TLS", True)

    def _create_message(self, to_email, subject, body_text, body_html=None):
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(body_text, "plain"))
        if body_html:
            msg.attach(MIMEText(body_html, "html"))

        return msg

    def _send_email(self, message):
        if not self.smtp_username or not self.smtp_password:
            logger.warning("SMTP credentials not configured. Email not sent.")
            return False

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.sendmail(self.from_email, [message["To"]], message.as_string())

            logger.info(f"Email sent successfully to {message['To']}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {message['To']}: {str(e)}")
            return False

    def send_password_reset_email(self, player, reset_token):
        """Send password reset email"""
        reset_url = url_for("auth.reset_password", token=reset_token, _external=True)
        hours = current_app.config.get("RESET_TOKEN_EXPIRY", 1)

        subject = f"Password Reset - {self.from_name}"

        body_text = f"""
        Hi {player.username},

        You requested a password reset for your {self.from_name} account.

        Use the link below to choose a new password:
        {reset_url}

        This link will expire in {hours} hour(s).

        If you didn't request this reset, please ignore this email.
        """

        body_html = f"""
        <html>
        <body>
            <h2>Password Reset</h2>
            <p>Hi {player.username},</p>
            <p>You requested a password reset for your {self.from_name} account.</p>
            <p><a href="{reset_url}">Reset Password</a></p>
            <p><small>This link will expire in {hours} hour(s).</small></p>
            <p>If you didn't request this reset, please ignore this email.</p>
        </body>
        </html>
        """

        message = self._create_message(player.email, subject, body_text, body_html)
        return self._send_email(message)
