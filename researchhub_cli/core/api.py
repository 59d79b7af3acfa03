from typing import Any, Optional
import requests

from . import config


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason


def _request(method: str, path: str, token: Optional[str] = None, **kwargs) -> dict[str, Any]:
    url = f"{config.BASE_URL}{path}"
    headers = kwargs.pop("headers", {})
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        resp = requests.request(method, url, headers=headers, timeout=config.REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise ApiError(f"Could not reach {config.BASE_URL}: {e}")

    try:
        body = resp.json()
    except ValueError:
        body = {}

    if not resp.ok:
        raise ApiError(
            body.get("error") or f"HTTP {resp.status_code}",
            status_code=resp.status_code,
            reason=body.get("reason"),
        )
    return body


def api_register(email: str, full_name: str, password: str, institution: Optional[str] = None) -> dict:
    """
    Creates an account. Returns {userId, emailVerificationRequired}.
    """
    data = {"email": email, "fullName": full_name, "password": password}
    if institution:
        data["institution"] = institution
    return _request("POST", "/api/auth/register", json=data)


def api_login(email: str, password: str, remember: bool = False) -> dict:
    """
    Logs in and returns {token, sessionToken, user}.
    """
    return _request("POST", "/api/auth/login", json={"email": email, "password": password, "remember": remember})


def api_logout(token: str) -> dict:
    return _request("POST", "/api/auth/logout", token=token)


def api_refresh(token: str) -> str:
    return _request("POST", "/api/auth/refresh", token=token)["token"]


def api_verify_email(verification_token: str) -> str:
    return _request("POST", "/api/auth/verify-email", json={"token": verification_token})["message"]


def api_forgot_password(email: str) -> str:
    return _request("POST", "/api/auth/forgot-password", json={"email": email})["message"]


def api_reset_password(reset_token: str, password: str) -> str:
    return _request("POST", "/api/auth/reset-password", json={"token": reset_token, "password": password})["message"]


def api_get_profile(token: str) -> dict:
    return _request("GET", "/api/users/profile", token=token)["user"]


def api_get_preferences(token: str) -> dict:
    return _request("GET", "/api/users/preferences", token=token)["preferences"]


def api_update_preferences(token: str, changes: dict) -> dict:
    return _request("PUT", "/api/users/preferences", token=token, json=changes)["preferences"]
