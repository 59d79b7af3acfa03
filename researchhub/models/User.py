from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field as PydanticField, field_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel

from ..core.clock import utcnow

# ==========================================
# SQLModel (Database Entity)
# ==========================================
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    full_name: str
    institution: str | None = Field(default=None, nullable=True)
    newsletter_subscribed: bool = Field(default=False)
    email_verified: bool = Field(default=False)
    is_active: bool = Field(default=True)
    verification_token: str | None = Field(default=None, index=True, nullable=True)
    reset_token: str | None = Field(default=None, index=True, nullable=True)
    reset_token_expires: datetime | None = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=utcnow)
    last_login: datetime | None = Field(default=None, nullable=True)


def normalize_email(email: str) -> str:
    return email.strip().lower()

# ==========================================
# Pydantic Models (DTOs)
# ==========================================
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailField(CamelModel):
    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)


# Properties to receive via API on registration
class RegisterRequest(EmailField):
    full_name: str = PydanticField(min_length=2, max_length=100)
    password: str = PydanticField(min_length=8)
    institution: str | None = PydanticField(default=None, max_length=255)
    newsletter: bool = False

    @field_validator("full_name", "institution", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


# Properties to receive via API on login
class LoginRequest(EmailField):
    password: str = PydanticField(min_length=1)
    remember: bool = False


class ForgotPasswordRequest(EmailField):
    pass


class ResetPasswordRequest(CamelModel):
    token: str = PydanticField(min_length=1)
    password: str = PydanticField(min_length=8)


class VerifyEmailRequest(CamelModel):
    token: str | None = None


class ProfileUpdate(CamelModel):
    full_name: str | None = PydanticField(default=None, min_length=2, max_length=100)
    institution: str | None = PydanticField(default=None, max_length=255)

    @field_validator("full_name", "institution", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class DeleteAccountRequest(CamelModel):
    confirm_email: EmailStr
    password: str = PydanticField(min_length=1)


# Properties to return via API
class UserResponse(CamelModel):
    id: int
    email: str
    full_name: str
    institution: str | None = None
    email_verified: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            institution=user.institution,
            email_verified=user.email_verified,
            created_at=user.created_at,
        )


class UserProfileResponse(UserResponse):
    newsletter_subscribed: bool
    last_login: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfileResponse":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            institution=user.institution,
            email_verified=user.email_verified,
            created_at=user.created_at,
            newsletter_subscribed=user.newsletter_subscribed,
            last_login=user.last_login,
        )


class AdminUserResponse(UserProfileResponse):
    is_active: bool

    @classmethod
    def from_user(cls, user: User) -> "AdminUserResponse":
        profile = UserProfileResponse.from_user(user)
        return cls(**profile.model_dump(), is_active=user.is_active)


class MessageResponse(CamelModel):
    message: str


class RegisterResponse(MessageResponse):
    user_id: int
    email_verification_required: bool


class LoginResponse(MessageResponse):
    token: str
    session_token: str
    user: UserResponse


class RefreshResponse(MessageResponse):
    token: str


class ProfileResponse(CamelModel):
    user: UserProfileResponse


class ProfileUpdateResponse(MessageResponse):
    user: UserProfileResponse


class WhoAmIResponse(CamelModel):
    authenticated: bool
    user: UserResponse | None = None
