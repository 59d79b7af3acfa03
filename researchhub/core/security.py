from datetime import timedelta
from typing import Any, Callable
import logging
import secrets
import time

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..models.AccessToken import AccessClaim

logger = logging.getLogger(__name__)


class PasswordHasher:
    """
    One-way adaptive hashing of user passwords (bcrypt through passlib).
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )
        self._dummy_digest: str | None = None

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, digest: str | None) -> bool:
        # Comparison is constant-time inside passlib
        if not digest:
            return False
        try:
            return self._context.verify(plaintext, digest)
        except (ValueError, TypeError):
            logger.warning("Rejected a malformed password digest")
            return False

    @property
    def dummy_digest(self) -> str:
        """
        A digest at the configured cost that no submitted password matches.

        Verifying against it makes a lookup miss cost the same as a wrong password.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash(secrets.token_urlsafe(32))
        return self._dummy_digest


class TokenRejected(Exception):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signatureInvalid"
    EXPIRED = "expired"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class TokenIssuer:
    """
    Signs and verifies the bearer tokens handed out at login.

    Tokens carry the user id, email and (optionally) the id of the session
    row created with them. A single secret is used for the whole process.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", clock: Callable[[], float] = time.time):
        self.secret = secret
        self.algorithm = algorithm
        self.clock = clock

    def sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        issued_at = int(self.clock())
        to_encode = claims.copy()
        to_encode.update({
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
        })
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> AccessClaim:
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError:
            raise TokenRejected(TokenRejected.MALFORMED, "Invalid access token")

        try:
            # Expiry is checked below against our own clock
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise TokenRejected(TokenRejected.SIGNATURE_INVALID, "Invalid access token")

        user_id = payload.get("userId")
        exp = payload.get("exp")
        if not isinstance(user_id, int) or not isinstance(exp, int) or not payload.get("email"):
            raise TokenRejected(TokenRejected.MALFORMED, "Invalid access token")

        if int(self.clock()) >= exp:
            raise TokenRejected(TokenRejected.EXPIRED, "Access token expired")

        return AccessClaim(
            user_id=user_id,
            email=payload["email"],
            session_id=payload.get("sid"),
            issued_at=payload.get("iat"),
            expires_at=exp,
        )
