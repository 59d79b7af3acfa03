from datetime import datetime
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.errors import Conflict
from ..models.User import User, normalize_email
from ..models.UserSession import UserSession

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Owns the `users` table. Every write is a single statement.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        statement = select(User).where(User.email == normalize_email(email))
        return self.session.exec(statement).first()

    def get_by_verification_token(self, token: str) -> User | None:
        statement = select(User).where(User.verification_token == token)
        return self.session.exec(statement).first()

    def get_by_reset_token(self, token: str) -> User | None:
        statement = select(User).where(User.reset_token == token)
        return self.session.exec(statement).first()

    def list_users(self) -> list[User]:
        return list(self.session.exec(select(User).order_by(User.id)).all())

    def create(
        self,
        email: str,
        full_name: str,
        password_hash: str,
        verification_token: str | None = None,
        institution: str | None = None,
        newsletter_subscribed: bool = False,
    ) -> User:
        db_user = User(
            email=normalize_email(email),
            full_name=full_name,
            institution=institution,
            password_hash=password_hash,
            verification_token=verification_token,
            newsletter_subscribed=newsletter_subscribed,
        )
        self.session.add(db_user)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            self.session.rollback()
            raise Conflict("User with this email already exists")
        self.session.refresh(db_user)
        return db_user

    def _update(self, user_id: int, *conditions, **values) -> int:
        statement = update(User).where(User.id == user_id, *conditions).values(**values)
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    def touch_last_login(self, user_id: int, when: datetime) -> None:
        self._update(user_id, last_login=when)

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        self._update(user_id, reset_token=token, reset_token_expires=expires_at)

    def update_password(self, user_id: int, password_hash: str, reset_token: str | None = None) -> bool:
        """
        Sets a new password hash and clears any reset token in the same UPDATE.

        When `reset_token` is given the row only changes if that token is still
        the live one, so a token can be consumed once.
        """
        conditions = [User.reset_token == reset_token] if reset_token is not None else []
        changed = self._update(
            user_id,
            *conditions,
            password_hash=password_hash,
            reset_token=None,
            reset_token_expires=None,
        )
        return changed == 1

    def mark_email_verified(self, user_id: int) -> None:
        self._update(user_id, email_verified=True, verification_token=None)

    def update_profile(self, user_id: int, full_name: str, institution: str | None) -> None:
        self._update(user_id, full_name=full_name, institution=institution)

    def deactivate(self, user_id: int) -> None:
        self._update(user_id, is_active=False)


class SessionStore:
    """
    Owns the `user_sessions` table. Sessions are revoked, never deleted.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        user_id: int,
        session_token: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserSession:
        user_session = UserSession(
            user_id=user_id,
            session_token=session_token,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(user_session)
        self.session.commit()
        self.session.refresh(user_session)
        return user_session

    def get(self, session_id: int) -> UserSession | None:
        return self.session.get(UserSession, session_id)

    def get_active(self, session_token: str, now: datetime) -> UserSession | None:
        statement = select(UserSession).where(
            UserSession.session_token == session_token,
            UserSession.is_active == True,
        )
        user_session = self.session.exec(statement).first()
        if user_session and user_session.is_valid(now):
            return user_session
        return None

    def list_for_user(self, user_id: int) -> list[UserSession]:
        statement = select(UserSession).where(UserSession.user_id == user_id).order_by(UserSession.id)
        return list(self.session.exec(statement).all())

    def _invalidate(self, *conditions) -> int:
        statement = update(UserSession).where(*conditions).values(is_active=False)
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    def invalidate(self, session_id: int, user_id: int) -> int:
        return self._invalidate(UserSession.id == session_id, UserSession.user_id == user_id)

    def invalidate_by_token(self, session_token: str) -> int:
        return self._invalidate(UserSession.session_token == session_token)

    def invalidate_all(self, user_id: int) -> int:
        return self._invalidate(UserSession.user_id == user_id, UserSession.is_active == True)
