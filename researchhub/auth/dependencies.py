from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated
import logging

from fastapi import Depends, Request
from sqlmodel import Session

from ..core.clock import utcnow
from ..core.database import get_session
from ..core.email import EmailService
from ..core.errors import Forbidden, RateLimited, Unauthorized
from ..core.rate_limit import RateLimiter
from ..core.security import PasswordHasher, TokenIssuer, TokenRejected
from ..core.settings import settings
from ..models.User import User
from ..users.store import PreferencesStore
from .service import AuthService, AccountState, account_state, verification_required_error
from .store import CredentialStore, SessionStore

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Token"
SESSION_COOKIE = "sessionToken"


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def get_email_service() -> EmailService:
    return EmailService.from_settings(settings)


def get_auth_service(
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
    email: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(
        credentials=CredentialStore(session),
        sessions=SessionStore(session),
        preferences=PreferencesStore(session),
        hasher=hasher,
        issuer=issuer,
        email=email,
        settings=settings,
    )


@dataclass
class Identity:
    user: User
    session_id: int | None = None
    session_token: str | None = None
    via: str = "bearer"


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise Unauthorized("Invalid authorization header", reason="malformed")
    # "Bearer" with nothing after it carries no credential
    return token.strip() or None


def _session_token(request: Request) -> str | None:
    return request.headers.get(SESSION_HEADER) or request.cookies.get(SESSION_COOKIE)


def resolve_identity(request: Request, session: Session, issuer: TokenIssuer) -> Identity:
    """
    Turns the credential on a request into an Identity, or raises Unauthorized.
    """
    credentials = CredentialStore(session)
    sessions = SessionStore(session)
    now = utcnow()
    token = _bearer_token(request)

    if token:
        try:
            claim = issuer.verify(token)
        except TokenRejected as e:
            extra = {"expired": True} if e.reason == TokenRejected.EXPIRED else {}
            raise Unauthorized(e.message, reason=e.reason, **extra)
        identity = Identity(user=credentials.get_by_id(claim.user_id), session_id=claim.session_id)
    elif session_token := _session_token(request):
        user_session = sessions.get_active(session_token, now)
        if not user_session:
            raise Unauthorized("Invalid or expired session", reason="invalidSession")
        identity = Identity(
            user=credentials.get_by_id(user_session.user_id),
            session_id=user_session.id,
            session_token=session_token,
            via="session",
        )
    else:
        raise Unauthorized("Access token required", reason="missing")

    if identity.user is None:
        raise Unauthorized("Invalid or inactive user", reason="userInactive")

    state = account_state(identity.user, settings.ENABLE_EMAIL_VERIFICATION)
    if state is AccountState.DEACTIVATED:
        raise Unauthorized("Invalid or inactive user", reason="userInactive")
    if state is AccountState.UNVERIFIED:
        raise verification_required_error()

    if identity.via == "bearer" and identity.session_id is not None:
        # Logout and password reset revoke the session a bearer token was issued with
        user_session = sessions.get(identity.session_id)
        if not user_session or user_session.user_id != identity.user.id or not user_session.is_valid(now):
            raise Unauthorized("Session has been revoked", reason="invalidSession")

    request.state.identity = identity
    return identity


def get_current_identity(
    request: Request,
    session: Session = Depends(get_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Identity:
    return resolve_identity(request, session, issuer)


def get_current_user(identity: Annotated[Identity, Depends(get_current_identity)]) -> User:
    return identity.user


def get_optional_identity(
    request: Request,
    session: Session = Depends(get_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Identity | None:
    try:
        return resolve_identity(request, session, issuer)
    except Unauthorized:
        return None


def is_admin(user: User) -> bool:
    email = user.email.lower()
    return email in settings.admin_emails or "admin" in email


def get_current_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if not is_admin(current_user):
        logger.warning("User %s denied admin access", current_user.id)
        raise Forbidden("Admin access required")
    return current_user


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.auth_rate_limiter


def enforce_auth_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    key = request.client.host if request.client else "unknown"
    decision = limiter.check(key)
    if not decision.allowed:
        logger.warning("Rate limited %s on %s, retry after %ss", key, request.url.path, decision.retry_after)
        raise RateLimited(decision.retry_after)
