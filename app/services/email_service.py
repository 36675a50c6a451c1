"""
Transactional email over SMTP
Welcome, password reset and enquiry notices
"""
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from app.core.config import settings
from app.core.exceptions import NotificationError

logger = logging.getLogger(__name__)


def _esc(value) -> str:
    return html.escape(str(value)) if value is not None else ""


class SmtpNotifier:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        app_name: Optional[str] = None,
        client_url: Optional[str] = None,
    ):
        self.host = host if host is not None else settings.SMTP_SERVER
        self.port = port or settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.sender = sender or settings.EMAIL_FROM
        self.app_name = app_name or settings.PROJECT_NAME
        self.client_url = client_url or settings.CLIENT_URL

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def send_email(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str = "",
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Dispatch one email.

        Returns False (and logs) when SMTP is not configured.

        Raises:
            NotificationError: the SMTP exchange failed.
        """
        if not self.configured:
            logger.warning(f"[email] SMTP not configured. Would send to '{to}': {subject}")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        reply_to = reply_to or settings.EMAIL_REPLY_TO
        if reply_to:
            msg["Reply-To"] = reply_to
        if body_text:
            msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as srv:
                srv.ehlo()
                srv.starttls()
                srv.login(self.user, self.password)
                srv.sendmail(self.sender, to, msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"[email] Failed sending to '{to}': {exc}")
            raise NotificationError(str(exc)) from exc

        logger.info(f"[email] Sent to '{to}': {subject}")
        return True

    # ── Templates ─────────────────────────────────────────────────────────────

    def send_welcome(self, email: str) -> bool:
        subject = f"Welcome to {self.app_name}"
        body = f"""
<html>
  <body>
    <p>Good day! Welcome to {self.app_name} and thank you for joining us.</p>
    <div style="margin:20px auto;">
      <a href="{self.client_url}" style="margin-right:50px">Browse properties</a>
      <a href="{self.client_url}/post-ad">Post ad</a>
    </div>
    <i>Team {self.app_name}</i>
  </body>
</html>"""
        text = f"Welcome to {self.app_name}! Browse properties at {self.client_url}"
        return self.send_email(email, subject, body, text)

    def send_password_reset(self, email: str, reset_url: str) -> bool:
        subject = f"Reset Your {self.app_name} Password"
        body = f"""
<html>
  <body style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px;color:#333">
    <h2>Password Reset Request</h2>
    <p>We received a request to reset your password for your {self.app_name} account.
       If you didn't make this request, please ignore this email.</p>
    <p style="text-align:center;margin:30px 0">
      <a href="{reset_url}"
         style="background:#3498db;color:#fff;padding:14px 32px;border-radius:5px;text-decoration:none">
        Reset Your Password
      </a>
    </p>
    <p>If the button doesn't work, copy and paste this link into your browser:<br>{reset_url}</p>
  </body>
</html>"""
        text = f"Reset your {self.app_name} password: {reset_url}"
        return self.send_email(email, subject, body, text)

    def send_enquiry(self, listing, owner, requester, message: str) -> bool:
        """Notify a listing owner that someone has enquired about it."""
        subject = f"Enquiry received - {self.app_name}"
        listing_url = f"{self.client_url}/ad/{listing.slug}"
        summary = f"{listing.property_type} for {listing.action} - {listing.address} - ({listing.price:,.0f})"
        body = f"""
<html>
  <body>
    <p>Good day! {_esc(owner.name or owner.username)},</p>
    <p>You have received a new enquiry from {_esc(requester.name or requester.username)} via {self.client_url}.</p>
    <p><strong>Details:</strong></p>
    <ul>
      <li>Name: {_esc(requester.name)}</li>
      <li>Email: <a href="mailto:{_esc(requester.email)}">{_esc(requester.email)}</a></li>
      <li>Phone: {_esc(requester.phone)}</li>
      <li>Enquired Ad: <a href="{listing_url}">{_esc(summary)}</a></li>
    </ul>
    <p><strong>Message:</strong></p>
    <p>{_esc(message)}</p>
    <p>Thank you!</p>
    <i>Team {self.app_name}</i>
  </body>
</html>"""
        text = (
            f"New enquiry from {requester.name or requester.username}\n"
            f"Email: {requester.email}\nPhone: {requester.phone or 'Not provided'}\n"
            f"Ad: {summary} ({listing_url})\n\nMessage:\n{message}"
        )
        return self.send_email(owner.email, subject, body, text, reply_to=requester.email)
