from typing import Annotated
import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth.dependencies import get_current_admin
from ..auth.store import CredentialStore, SessionStore
from ..core.database import get_session
from ..core.errors import NotFound
from ..models.User import AdminUserResponse, MessageResponse, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

@router.get("/users")
def list_users(
    current_admin: Annotated[User, Depends(get_current_admin)],
    session: Session = Depends(get_session),
):
    """
    List all users (Admin only).
    """
    users = CredentialStore(session).list_users()
    return {"users": [AdminUserResponse.from_user(u).model_dump(by_alias=True, mode="json") for u in users]}

@router.post("/users/{user_id}/deactivate", response_model=MessageResponse)
def deactivate_user(
    user_id: int,
    current_admin: Annotated[User, Depends(get_current_admin)],
    session: Session = Depends(get_session),
):
    """
    Deactivate a user and revoke their sessions (Admin only).
    """
    credentials = CredentialStore(session)
    if not credentials.get_by_id(user_id):
        raise NotFound("User not found")

    credentials.deactivate(user_id)
    revoked = SessionStore(session).invalidate_all(user_id)
    logger.info("Admin %s deactivated user %s (%d sessions revoked)", current_admin.id, user_id, revoked)
    return MessageResponse(message="User deactivated successfully")
