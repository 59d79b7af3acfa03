from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable
import logging
import uuid

from ..core.clock import as_utc, utcnow
from ..core.email import EmailService
from ..core.errors import (
    Conflict,
    EmailDeliveryFailed,
    InvalidCredentials,
    InvalidOrExpiredToken,
    Unauthorized,
    ValidationFailed,
)
from ..core.logging import redact_email
from ..core.security import PasswordHasher, TokenIssuer
from ..core.settings import Settings
from ..models.User import User, RegisterRequest, LoginRequest
from ..users.store import PreferencesStore
from .store import CredentialStore, SessionStore

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


class AccountState(Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"
    UNVERIFIED = "unverified"


def account_state(user: User, require_verification: bool) -> AccountState:
    if not user.is_active:
        return AccountState.DEACTIVATED
    if require_verification and not user.email_verified:
        return AccountState.UNVERIFIED
    return AccountState.ACTIVE


def verification_required_error() -> Unauthorized:
    return Unauthorized(
        "Email verification required",
        reason="verificationRequired",
        requiresVerification=True,
    )


@dataclass
class RegistrationResult:
    user_id: int
    email_verification_required: bool


@dataclass
class LoginResult:
    token: str
    session_token: str
    user: User


class AuthService:
    """
    Account lifecycle: register, login, logout, refresh, password reset and email verification.

    Storage is only touched through the credential, session and preferences stores.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionStore,
        preferences: PreferencesStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        email: EmailService,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.credentials = credentials
        self.sessions = sessions
        self.preferences = preferences
        self.hasher = hasher
        self.issuer = issuer
        self.email = email
        self.settings = settings
        self.clock = clock

    @property
    def require_verification(self) -> bool:
        return self.settings.ENABLE_EMAIL_VERIFICATION

    def register(self, data: RegisterRequest) -> RegistrationResult:
        if self.credentials.get_by_email(data.email):
            raise Conflict("User with this email already exists")

        password_hash = self.hasher.hash(data.password)
        verification_token = str(uuid.uuid4())

        user = self.credentials.create(
            email=data.email,
            full_name=data.full_name,
            institution=data.institution or None,
            password_hash=password_hash,
            verification_token=verification_token,
            newsletter_subscribed=data.newsletter,
        )
        logger.info("Registered user %s (%s)", user.id, redact_email(user.email))

        if self.require_verification:
            result = self.email.send_verification(user.email, user.full_name, verification_token)
            if not result.ok:
                # Registration stands; the user can ask for another email later
                logger.warning("Verification email for user %s not sent: %s", user.id, result.error)

        self.preferences.create_default(user.id)

        return RegistrationResult(
            user_id=user.id,
            email_verification_required=self.require_verification,
        )

    def login(
        self,
        data: LoginRequest,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        user = self.credentials.get_by_email(data.email)
        if not user:
            self.hasher.verify(data.password, self.hasher.dummy_digest)
            raise InvalidCredentials()

        state = account_state(user, self.require_verification)
        if state is AccountState.DEACTIVATED:
            raise Unauthorized("Account is deactivated", reason="deactivated")

        if not self.hasher.verify(data.password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise InvalidCredentials()

        if state is AccountState.UNVERIFIED:
            raise verification_required_error()

        days = self.settings.JWT_REMEMBER_DAYS if data.remember else self.settings.JWT_EXPIRES_DAYS
        ttl = timedelta(days=days)
        now = self.clock()

        user_session = self.sessions.create(
            user_id=user.id,
            session_token=str(uuid.uuid4()),
            expires_at=now + ttl,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        token = self.issue_token(user, user_session.id, ttl)
        self.credentials.touch_last_login(user.id, now)
        logger.info("User %s logged in (session %s)", user.id, user_session.id)

        return LoginResult(token=token, session_token=user_session.session_token, user=user)

    def issue_token(self, user: User, session_id: int | None, ttl: timedelta | None = None) -> str:
        if ttl is None:
            ttl = timedelta(days=self.settings.JWT_EXPIRES_DAYS)
        claims = {"userId": user.id, "email": user.email}
        if session_id is not None:
            claims["sid"] = session_id
        return self.issuer.sign(claims, ttl)

    def logout(self, user: User, session_id: int | None = None, session_token: str | None = None) -> None:
        # Already revoked sessions are fine, logout is idempotent
        if session_id is not None:
            self.sessions.invalidate(session_id, user.id)
        if session_token is not None:
            self.sessions.invalidate_by_token(session_token)
        logger.info("User %s logged out", user.id)

    def refresh(self, user: User, session_id: int | None = None) -> str:
        return self.issue_token(user, session_id)

    def forgot_password(self, email: str) -> str:
        user = self.credentials.get_by_email(email)
        if not user:
            # Same answer as for a known address
            return FORGOT_PASSWORD_MESSAGE

        expires_minutes = self.settings.RESET_TOKEN_EXPIRE_MINUTES
        reset_token = str(uuid.uuid4())
        self.credentials.set_reset_token(user.id, reset_token, self.clock() + timedelta(minutes=expires_minutes))

        result = self.email.send_password_reset(user.email, user.full_name, reset_token, expires_minutes)
        if not result.ok:
            raise EmailDeliveryFailed("Failed to send reset email")

        logger.info("Password reset requested for user %s", user.id)
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, token: str, new_password: str) -> None:
        user = self.credentials.get_by_reset_token(token)
        expires_at = as_utc(user.reset_token_expires) if user else None
        if not expires_at or self.clock() > expires_at:
            raise InvalidOrExpiredToken("Invalid or expired reset token")

        password_hash = self.hasher.hash(new_password)
        if not self.credentials.update_password(user.id, password_hash, reset_token=token):
            # Consumed by a concurrent request
            raise InvalidOrExpiredToken("Invalid or expired reset token")

        revoked = self.sessions.invalidate_all(user.id)
        logger.info("Password reset for user %s, %d sessions revoked", user.id, revoked)

    def verify_email(self, token: str | None) -> str:
        if not token:
            raise ValidationFailed("Verification token is required")

        user = self.credentials.get_by_verification_token(token)
        if not user:
            raise ValidationFailed("Invalid verification token", reason="invalidToken")

        if user.email_verified:
            return "Email already verified"

        self.credentials.mark_email_verified(user.id)
        logger.info("Email verified for user %s", user.id)

        result = self.email.send_welcome(user.email, user.full_name)
        if not result.ok:
            logger.warning("Welcome email for user %s not sent: %s", user.id, result.error)

        return "Email verified successfully"
