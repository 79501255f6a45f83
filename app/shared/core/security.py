"""
Security utilities for bearer-token authentication and password hashing.
Resolves the request Principal from a verified JWT and the identity store.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Protocol

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from ..config.settings import Settings, get_settings
from ..utils.logging import get_logger
from .exceptions import AuthenticationError, AuthReason

logger = get_logger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to one request."""
    id: str
    email: Optional[str] = None
    handle: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Principal":
        return cls(
            id=str(document.get("_id") or document.get("id")),
            email=document.get("email"),
            handle=document.get("name") or document.get("handle"),
            is_active=bool(document.get("isActive", document.get("is_active", True))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "handle": self.handle,
            "isActive": self.is_active,
        }


class IdentityStore(Protocol):
    """Looks users up by id. Returns ``None`` for unknown ids."""

    async def find_user(self, user_id: str) -> Optional[Mapping[str, Any]]:
        ...


class TokenService:
    """
    JWT encoding and verification.
    The subject id is read from ``sub`` and falls back to ``userId``.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(
        self,
        subject: str,
        extra_claims: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token for a user.

        Args:
            subject: User id stored in the ``sub`` claim
            extra_claims: Additional payload claims
            expires_delta: Custom expiration time (negative for already expired tokens)

        Returns:
            str: Encoded JWT token
        """
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.access_token_expire_minutes)

        to_encode = dict(extra_claims or {})
        to_encode.update({
            "sub": subject,
            "iat": now,
            "exp": now + expires_delta,
            "type": "access",
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """
        Verify a token and return its subject id.

        Raises:
            AuthenticationError: ``TOKEN_EXPIRED`` for an expired token,
                ``INVALID_TOKEN`` for anything else that does not verify
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise AuthenticationError("Token expired", reason=AuthReason.TOKEN_EXPIRED)
        except JWTError:
            raise AuthenticationError("Invalid token", reason=AuthReason.INVALID_TOKEN)

        subject = payload.get("sub") or payload.get("userId")
        if not subject:
            raise AuthenticationError("Invalid token", reason=AuthReason.INVALID_TOKEN)
        return str(subject)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class Authenticator:
    """
    Resolves bearer credentials to a Principal.

    Required mode raises ``AuthenticationError`` with a reason code; optional
    mode returns ``None`` instead of raising.
    """

    def __init__(self, tokens: TokenService, identities: IdentityStore):
        self.tokens = tokens
        self.identities = identities

    async def authenticate(
        self,
        token: Optional[str],
        ip_address: Optional[str] = None,
        path: Optional[str] = None
    ) -> Principal:
        try:
            principal = await self._resolve(token)
        except AuthenticationError as exc:
            logger.security.log_authentication(
                reason=exc.reason, success=False, ip_address=ip_address, path=path
            )
            raise

        logger.security.log_authentication(
            reason="verified", success=True, ip_address=ip_address, path=path, user_id=principal.id
        )
        return principal

    async def authenticate_optional(self, token: Optional[str]) -> Optional[Principal]:
        if not token:
            return None
        try:
            return await self._resolve(token)
        except AuthenticationError as exc:
            logger.debug("Optional authentication ignored credential", reason=exc.reason)
            return None

    async def _resolve(self, token: Optional[str]) -> Principal:
        if not token:
            raise AuthenticationError("Access token required", reason=AuthReason.NO_TOKEN)

        user_id = self.tokens.verify(token)
        document = await self.identities.find_user(user_id)
        if document is None:
            raise AuthenticationError("User not found", reason=AuthReason.USER_NOT_FOUND)

        principal = Principal.from_document(document)
        if not principal.is_active:
            raise AuthenticationError(
                "User account is inactive",
                reason=AuthReason.USER_INACTIVE,
                user_id=principal.id
            )
        return principal


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify password against hash.

    Malformed stored hashes count as a mismatch.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed")
        return False
