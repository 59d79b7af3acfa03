from typing import Any
import logging

from sqlmodel import Session

from ..auth.store import CredentialStore, SessionStore
from ..core.clock import as_utc, utcnow
from ..core.errors import Unauthorized, ValidationFailed
from ..core.security import PasswordHasher
from ..models.User import User, ProfileUpdate, DeleteAccountRequest, UserProfileResponse, normalize_email
from ..models.UserPreferences import PreferencesUpdate, PreferencesView
from .store import PreferencesStore

logger = logging.getLogger(__name__)

def update_profile(session: Session, user: User, update_data: ProfileUpdate) -> User:
    credentials = CredentialStore(session)
    fields = update_data.model_fields_set
    full_name = update_data.full_name if update_data.full_name is not None else user.full_name
    institution = update_data.institution if "institution" in fields else user.institution

    credentials.update_profile(user.id, full_name=full_name, institution=institution or None)
    session.refresh(user)
    return user

def get_preferences(session: Session, user: User) -> PreferencesView:
    # Accounts created before preferences existed get the defaults on first read
    prefs = PreferencesStore(session).get_or_create(user.id)
    return PreferencesView.from_preferences(prefs)

def update_preferences(session: Session, user: User, update_data: PreferencesUpdate) -> PreferencesView:
    prefs = PreferencesStore(session).update(user.id, update_data)
    return PreferencesView.from_preferences(prefs)

def export_user_data(session: Session, user: User) -> dict[str, Any]:
    """
    Everything we hold about the user, minus secrets.
    """
    prefs = PreferencesStore(session).get(user.id)
    sessions = SessionStore(session).list_for_user(user.id)
    return {
        "user": UserProfileResponse.from_user(user).model_dump(by_alias=True, mode="json"),
        "preferences": PreferencesView.from_preferences(prefs).model_dump(by_alias=True, mode="json") if prefs else None,
        "sessions": [
            {
                "created": as_utc(s.created_at).isoformat(),
                "expiresAt": as_utc(s.expires_at).isoformat(),
                "ipAddress": s.ip_address,
                "userAgent": s.user_agent,
                "isActive": s.is_active,
            }
            for s in sessions
        ],
        "exportedAt": utcnow().isoformat(),
    }

def delete_account(session: Session, user: User, data: DeleteAccountRequest, hasher: PasswordHasher) -> None:
    """
    Soft delete: the account is deactivated and all of its sessions revoked.
    """
    if normalize_email(data.confirm_email) != user.email:
        raise ValidationFailed("Email confirmation does not match account email")

    if not hasher.verify(data.password, user.password_hash):
        raise Unauthorized("Invalid password", reason="invalidPassword")

    CredentialStore(session).deactivate(user.id)
    revoked = SessionStore(session).invalidate_all(user.id)
    logger.info("Deactivated user %s, %d sessions revoked", user.id, revoked)
