from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth.dependencies import get_current_user, get_password_hasher
from ..core.database import get_session
from ..core.security import PasswordHasher
from ..models.User import (
    DeleteAccountRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    User,
    UserProfileResponse,
)
from ..models.UserPreferences import PreferencesResponse, PreferencesUpdate, PreferencesUpdateResponse
from .service import delete_account, export_user_data, get_preferences, update_preferences, update_profile

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("/profile", response_model=ProfileResponse)
def read_profile(current_user: Annotated[User, Depends(get_current_user)]):
    return ProfileResponse(user=UserProfileResponse.from_user(current_user))

@router.put("/profile", response_model=ProfileUpdateResponse)
def update_my_profile(
    update_data: ProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """
    Update the display name and/or institution.
    """
    user = update_profile(session, current_user, update_data)
    return ProfileUpdateResponse(message="Profile updated successfully", user=UserProfileResponse.from_user(user))

@router.get("/preferences", response_model=PreferencesResponse)
def read_preferences(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    return PreferencesResponse(preferences=get_preferences(session, current_user))

@router.put("/preferences", response_model=PreferencesUpdateResponse)
def update_my_preferences(
    update_data: PreferencesUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    preferences = update_preferences(session, current_user, update_data)
    return PreferencesUpdateResponse(message="Preferences updated successfully", preferences=preferences)

@router.get("/export")
def export_data(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
):
    """
    Export the current user's data (profile, preferences, sessions).
    """
    data = export_user_data(session, current_user)
    return {"message": "User data exported successfully", "data": data}

@router.delete("/account", response_model=MessageResponse)
def delete_my_account(
    data: DeleteAccountRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Session = Depends(get_session),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """
    Deactivate the account. Requires the account email and password.
    """
    delete_account(session, current_user, data, hasher)
    return MessageResponse(message="Account deleted successfully")
