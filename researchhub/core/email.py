from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
import logging
import smtplib
import ssl

from .logging import redact_email
from .settings import Settings

logger = logging.getLogger(__name__)

BRAND = "Research Hub"
SMTPS_PORT = 465

TEMPLATES = {
    "verification": {
        "subject": f"Verify your {BRAND} account",
        "text": (
            "Welcome to {brand}, {name}!\n\n"
            "To complete your registration, please verify your email address by opening the link below:\n\n"
            "{link}\n\n"
            "If you didn't create an account with {brand}, you can safely ignore this email.\n"
        ),
        "html": (
            "<h2>Welcome, {name}!</h2>"
            "<p>To complete your registration, please verify your email address.</p>"
            '<p><a href="{link}">Verify Email Address</a></p>'
            "<p>If you didn't create an account with {brand}, you can safely ignore this email.</p>"
        ),
    },
    "password-reset": {
        "subject": f"Reset your {BRAND} password",
        "text": (
            "Hi {name},\n\n"
            "We received a request to reset your {brand} password. Open the link below to choose a new one:\n\n"
            "{link}\n\n"
            "This link expires in {expires_minutes} minutes. If you didn't request a reset, ignore this email.\n"
        ),
        "html": (
            "<h2>Reset Your Password</h2>"
            "<p>Hi {name}, we received a request to reset your {brand} password.</p>"
            '<p><a href="{link}">Reset Password</a></p>'
            "<p>This link expires in {expires_minutes} minutes. If you didn't request a reset, ignore this email.</p>"
        ),
    },
    "welcome": {
        "subject": f"Welcome to {BRAND}!",
        "text": (
            "Welcome to {brand}, {name}!\n\n"
            "Your email has been verified and your account is now active.\n\n"
            "Visit: {link}\n"
        ),
        "html": (
            "<h2>Welcome, {name}!</h2>"
            "<p>Your email has been verified and your account is now active.</p>"
            '<p><a href="{link}">Start Learning</a></p>'
        ),
    },
}


@dataclass(frozen=True)
class SendResult:
    ok: bool
    error: str | None = None


class EmailService:
    """
    Sends templated transactional emails over SMTP.

    send() never raises: it returns a SendResult and callers decide whether a
    failure matters. Without an SMTP host the message is only logged.

    Port 465 speaks implicit TLS. Any other port starts in plaintext and is
    upgraded with STARTTLS unless `smtp_starttls` is off.
    """

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_starttls: bool = True,
        from_email: str | None = None,
        frontend_url: str = "http://localhost:3000",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_starttls = smtp_starttls
        self.from_email = from_email or smtp_user
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_starttls=settings.SMTP_STARTTLS,
            from_email=settings.EMAIL_FROM,
            frontend_url=settings.FRONTEND_URL,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def render(self, template: str, **data) -> tuple[str, str, str]:
        tpl = TEMPLATES[template]
        data.setdefault("brand", BRAND)
        return tpl["subject"], tpl["text"].format(**data), tpl["html"].format(**data)

    def send(self, to: str, template: str, **data) -> SendResult:
        subject, text_body, html_body = self.render(template, **data)

        if not self.is_configured:
            logger.info("Email transport not configured, skipping '%s' to %s", template, redact_email(to))
            return SendResult(ok=True)

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{BRAND} <{self.from_email}>"
        msg["To"] = to
        msg["Date"] = datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S +0000")
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")

        try:
            context = ssl.create_default_context()
            if self.smtp_port == SMTPS_PORT:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30)
            with server:
                if self.smtp_port != SMTPS_PORT and self.smtp_starttls:
                    server.starttls(context=context)
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error("Failed to send '%s' email to %s: %s", template, redact_email(to), e)
            return SendResult(ok=False, error=str(e))

        logger.info("Sent '%s' email to %s", template, redact_email(to))
        return SendResult(ok=True)

    def send_verification(self, to: str, name: str, token: str) -> SendResult:
        link = f"{self.frontend_url}/verify-email?token={token}"
        return self.send(to, "verification", name=name, link=link)

    def send_password_reset(self, to: str, name: str, token: str, expires_minutes: int = 60) -> SendResult:
        link = f"{self.frontend_url}/reset-password?token={token}"
        return self.send(to, "password-reset", name=name, link=link, expires_minutes=expires_minutes)

    def send_welcome(self, to: str, name: str) -> SendResult:
        return self.send(to, "welcome", name=name, link=self.frontend_url)
