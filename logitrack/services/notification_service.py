from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from functools import lru_cache

from logitrack.core.config import settings

logger = logging.getLogger(__name__)

ACCESS_GRANTED_SUBJECT = "Your Logi Track access has been approved"


class NotificationError(Exception):
    pass


class MailProvider:
    def send(self, *, to: str, subject: str, html_body: str, text_body: str) -> None:
        raise NotImplementedError


class SmtpMailProvider(MailProvider):
    def __init__(
        self,
        *,
        host: str,
        port: int,
        user: str,
        password: str,
        use_ssl: bool = True,
        timeout_seconds: float = 15.0,
        from_address: str = "",
        from_name: str = "",
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.timeout_seconds = timeout_seconds
        self.from_address = from_address or user
        self.from_name = from_name

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl or self.port == 465:
            return smtplib.SMTP_SSL(
                self.host,
                self.port,
                timeout=self.timeout_seconds,
                context=ssl.create_default_context(),
            )
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds)
        server.starttls(context=ssl.create_default_context())
        return server

    def send(self, *, to: str, subject: str, html_body: str, text_body: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = to
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")

        try:
            with self._connect() as server:
                if self.user:
                    server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send email to {to}: {exc}") from exc


def is_mail_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD)


@lru_cache(maxsize=1)
def _build_smtp_provider() -> SmtpMailProvider:
    return SmtpMailProvider(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_ssl=settings.SMTP_USE_SSL,
        timeout_seconds=settings.SMTP_TIMEOUT_SECONDS,
        from_address=settings.MAIL_FROM,
        from_name=settings.MAIL_FROM_NAME,
    )


def get_mail_provider() -> MailProvider | None:
    if not is_mail_configured():
        return None
    return _build_smtp_provider()


def render_access_granted(
    *,
    email: str,
    magic_link: str | None = None,
    password: str | None = None,
) -> tuple[str, str]:
    """Returns (html_body, text_body) for the access-granted email."""
    intro = "Your request for access to Logi Track has been approved."
    safe_email = html.escape(email)
    if magic_link:
        safe_link = html.escape(magic_link, quote=True)
        html_body = (
            f"<p>{intro}</p>"
            f"<p>Sign in as <strong>{safe_email}</strong> using the link below:</p>"
            f'<p><a href="{safe_link}">{safe_link}</a></p>'
            "<p>The link can only be used for a limited time.</p>"
        )
        text_body = f"{intro}\n\nSign in as {email} using this link:\n{magic_link}\n"
    else:
        safe_password = html.escape(password or "")
        html_body = (
            f"<p>{intro}</p>"
            f"<p>Email: <strong>{safe_email}</strong><br>"
            f"Temporary password: <code>{safe_password}</code></p>"
            "<p>Please change your password after your first sign-in.</p>"
        )
        text_body = f"{intro}\n\nEmail: {email}\nTemporary password: {password or ''}\n"
    return html_body, text_body


def send_access_granted_email(
    provider: MailProvider,
    *,
    to: str,
    magic_link: str | None = None,
    password: str | None = None,
) -> None:
    if not magic_link and not password:
        raise NotificationError("Either a magic link or a password is required.")
    html_body, text_body = render_access_granted(email=to, magic_link=magic_link, password=password)
    provider.send(to=to, subject=ACCESS_GRANTED_SUBJECT, html_body=html_body, text_body=text_body)
    logger.info("access_granted_email_sent to=%s method=%s", to, "magic_link" if magic_link else "credentials")
