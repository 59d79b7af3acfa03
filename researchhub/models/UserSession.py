from datetime import datetime

from sqlmodel import SQLModel, Field

from ..core.clock import as_utc, utcnow

class UserSession(SQLModel, table=True):
    __tablename__ = "user_sessions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    session_token: str = Field(unique=True, index=True)
    expires_at: datetime
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    ip_address: str | None = Field(default=None, nullable=True)
    user_agent: str | None = Field(default=None, nullable=True)

    def is_valid(self, now: datetime) -> bool:
        return self.is_active and as_utc(now) < as_utc(self.expires_at)
