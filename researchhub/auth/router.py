from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from ..models.User import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UserResponse,
    VerifyEmailRequest,
    WhoAmIResponse,
)
from .dependencies import (
    Identity,
    enforce_auth_rate_limit,
    get_auth_service,
    get_current_identity,
    get_optional_identity,
)
from .service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def register(data: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Create an account. A verification email goes out when verification is enabled.
    """
    result = auth.register(data)
    return RegisterResponse(
        message="User registered successfully",
        user_id=result.user_id,
        email_verification_required=result.email_verification_required,
    )

@router.post("/login", response_model=LoginResponse, dependencies=[Depends(enforce_auth_rate_limit)])
def login(data: LoginRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    """
    Login with email and password to get a bearer token and a session token.
    """
    result = auth.login(
        data,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )
    return LoginResponse(
        message="Login successful",
        token=result.token,
        session_token=result.session_token,
        user=UserResponse.from_user(result.user),
    )

@router.post("/logout", response_model=MessageResponse)
def logout(
    identity: Annotated[Identity, Depends(get_current_identity)],
    auth: AuthService = Depends(get_auth_service),
):
    """
    Revoke the session behind the presented credential.
    """
    auth.logout(identity.user, session_id=identity.session_id, session_token=identity.session_token)
    return MessageResponse(message="Logout successful")

@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def forgot_password(data: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    return MessageResponse(message=auth.forgot_password(data.email))

@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def reset_password(data: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(data.token, data.password)
    return MessageResponse(message="Password reset successful")

@router.post("/verify-email", response_model=MessageResponse)
def verify_email(data: VerifyEmailRequest, auth: AuthService = Depends(get_auth_service)):
    return MessageResponse(message=auth.verify_email(data.token))

@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    identity: Annotated[Identity, Depends(get_current_identity)],
    auth: AuthService = Depends(get_auth_service),
):
    """
    Issue a fresh bearer token. The session row keeps its original expiry.
    """
    token = auth.refresh(identity.user, session_id=identity.session_id)
    return RefreshResponse(message="Token refreshed successfully", token=token)

@router.get("/me", response_model=WhoAmIResponse)
def who_am_i(identity: Annotated[Identity | None, Depends(get_optional_identity)]):
    if identity is None:
        return WhoAmIResponse(authenticated=False)
    return WhoAmIResponse(authenticated=True, user=UserResponse.from_user(identity.user))
