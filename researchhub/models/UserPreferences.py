from datetime import datetime
from typing import Any, Literal

from pydantic import Field as PydanticField
from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel

from ..core.clock import utcnow
from .User import CamelModel

class UserPreferences(SQLModel, table=True):
    __tablename__ = "user_preferences"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    theme: str = Field(default="dark")
    email_notifications: bool = Field(default=True)
    preferred_categories: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    bookmarked_resources: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    completed_guides: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    progress_data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow)


class PreferencesView(CamelModel):
    theme: str
    email_notifications: bool
    preferred_categories: list[str]
    bookmarked_resources: list[str]
    completed_guides: list[str]
    progress_data: dict[str, Any]

    @classmethod
    def from_preferences(cls, prefs: UserPreferences) -> "PreferencesView":
        return cls(
            theme=prefs.theme,
            email_notifications=prefs.email_notifications,
            preferred_categories=list(prefs.preferred_categories or []),
            bookmarked_resources=list(prefs.bookmarked_resources or []),
            completed_guides=list(prefs.completed_guides or []),
            progress_data=dict(prefs.progress_data or {}),
        )


class PreferencesUpdate(CamelModel):
    theme: Literal["dark", "light"] | None = None
    email_notifications: bool | None = None
    preferred_categories: list[str] | None = None
    bookmarked_resources: list[str] | None = None
    completed_guides: list[str] | None = None
    progress_data: dict[str, Any] | None = None


class PreferencesResponse(CamelModel):
    preferences: PreferencesView


class PreferencesUpdateResponse(PreferencesResponse):
    message: str
