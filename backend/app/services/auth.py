"""Admin session authentication: signed session tokens and credential checks."""

import binascii
import hmac
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jwt.algorithms import HMACAlgorithm
from jwt.exceptions import PyJWTError
from jwt.utils import base64url_decode, base64url_encode
from pydantic import ValidationError

from app.core.config import Settings
from app.schemas.auth import SessionClaims, TokenHeader
from app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

_hmac_sha256 = HMACAlgorithm(HMACAlgorithm.SHA256)


class AuthError(Exception):
    """Base authentication error."""

    pass


class InvalidCredentialsError(AuthError):
    """Invalid username or password."""

    pass


class MissingSecretError(AuthError):
    """Session secret is not configured."""

    pass


class SessionInactiveError(AuthError):
    """Session id is not in the active-session registry."""

    pass


class TokenError(AuthError):
    """Session token error."""

    pass


class MalformedTokenError(TokenError):
    """Token is not three decodable segments with the expected shape."""

    pass


class BadSignatureError(TokenError):
    """Token signature does not match."""

    pass


class TokenExpiredError(TokenError):
    """Token has expired."""

    pass


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        ph.verify(password_hash, password)
        return True
    except VerificationError:
        return False
    except InvalidHashError:
        logger.error("Configured admin password hash is not a valid Argon2 hash")
        return False


@dataclass(frozen=True)
class IssuedSession:
    """A freshly minted token together with its claims."""

    token: str
    claims: SessionClaims


class SessionTokenService:
    """Issues and verifies admin session tokens.

    Tokens are HS256 JWTs. Verification is done segment by segment so each
    failure maps to exactly one error type, and the signature comparison is
    done on the encoded strings in constant time.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _require_key(self) -> bytes:
        if not self._secret:
            raise MissingSecretError("Admin session secret is not configured")
        return _hmac_sha256.prepare_key(self._secret)

    def _sign(self, signing_input: bytes, key: bytes) -> bytes:
        return base64url_encode(_hmac_sha256.sign(signing_input, key))

    def issue(self, subject: str) -> IssuedSession:
        """Mint a token for subject with a fresh session id."""
        self._require_key()
        issued_at = int(self._clock())
        claims = SessionClaims(
            sub=subject,
            iat=issued_at,
            exp=issued_at + self.ttl_seconds,
            jti=str(uuid.uuid4()),
        )
        token = jwt.encode(claims.model_dump(), self._secret, algorithm=TOKEN_ALGORITHM)
        return IssuedSession(token=token, claims=claims)

    def verify(self, token: str) -> SessionClaims:
        """Verify signature and expiry and return the decoded claims.

        Raises:
            MissingSecretError: no secret configured
            MalformedTokenError: wrong segment count or undecodable segments
            BadSignatureError: signature mismatch
            TokenExpiredError: now >= exp
        """
        key = self._require_key()

        parts = token.split(".") if token else []
        if len(parts) != 3 or not all(parts):
            raise MalformedTokenError("Token must have three non-empty segments")
        header_b64, payload_b64, signature_b64 = parts

        expected = self._sign(f"{header_b64}.{payload_b64}".encode(), key)
        if not hmac.compare_digest(expected, signature_b64.encode()):
            raise BadSignatureError("Token signature mismatch")

        try:
            TokenHeader.model_validate_json(base64url_decode(header_b64))
            claims = SessionClaims.model_validate_json(base64url_decode(payload_b64))
        except (binascii.Error, ValueError, ValidationError) as e:
            raise MalformedTokenError("Token segments could not be decoded") from e

        if self._clock() >= claims.exp:
            raise TokenExpiredError("Token has expired")

        return claims

    @staticmethod
    def peek_session_id(token: str | None) -> str | None:
        """Read the session id without checking signature or expiry.

        Used by logout, which must revoke even expired sessions.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except PyJWTError:
            return None
        jti = payload.get("jti")
        return jti if isinstance(jti, str) and jti else None


def authenticate_session(
    token: str | None,
    token_service: SessionTokenService,
    registry: SessionRegistry,
) -> SessionClaims:
    """Run the full admin session check: signature, expiry, registry liveness.

    Shared by the request gate, the validation endpoint and the session
    dependency so all three reject exactly the same tokens.
    """
    if not token:
        raise MalformedTokenError("No session token")
    claims = token_service.verify(token)
    if not registry.is_active(claims.jti):
        raise SessionInactiveError("Session is not active")
    return claims


class AdminAuthenticator:
    """Checks login credentials against the configured admin account."""

    def __init__(self, settings: Settings):
        self.username = settings.admin_username.strip()
        self.password_hash = settings.effective_password_hash

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password_hash)

    def authenticate(self, username: str, password: str) -> str:
        """Return the admin subject on success.

        The password is verified even when the username is wrong so both
        failure modes take the same time.

        Raises:
            InvalidCredentialsError: for any username or password mismatch
        """
        username_ok = hmac.compare_digest(
            username.strip().lower().encode(), self.username.lower().encode()
        )
        password_ok = verify_password(password, self.password_hash)
        if not (username_ok and password_ok):
            raise InvalidCredentialsError("Invalid username or password")
        return self.username
