"""
Password hashing, JWT handling and the request-scoped access guard.

Identity is resolved once per request into a ``Requester`` and passed
explicitly into the services; nothing about the caller is kept in
process-wide state.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.core.config import get_settings
from eventbook.core.exceptions import AuthenticationError, AuthorizationError
from eventbook.core.logging import get_logger
from eventbook.db.session import get_db
from eventbook.models.user import User, UserRole

logger = get_logger(__name__)

OWNER = "owner"
ADMIN = "admin"

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning("token_rejected", error=str(e))
        raise AuthenticationError("Not authorized to access this route")


@dataclass(frozen=True)
class Requester:
    """The authenticated caller of a single request."""

    id: int
    role: str = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def capabilities_for(self, owner_id: Optional[int]) -> set[str]:
        """Capabilities this requester holds over a resource owned by ``owner_id``."""
        granted = set()
        if owner_id is not None and owner_id == self.id:
            granted.add(OWNER)
        if self.is_admin:
            granted.add(ADMIN)
        return granted


def require_capability(
    requester: Requester,
    owner_id: Optional[int],
    allowed: frozenset = frozenset({OWNER, ADMIN}),
    action: str = "perform this action",
) -> set[str]:
    """Raise AuthorizationError unless the requester holds one of ``allowed``."""
    granted = requester.capabilities_for(owner_id) & allowed
    if not granted:
        logger.warning(
            "authorization_denied",
            requester_id=requester.id,
            role=requester.role,
            owner_id=owner_id,
            action=action,
        )
        raise AuthorizationError(f"User {requester.id} is not authorized to {action}")
    return granted


async def get_current_requester(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Requester:
    """Access guard: resolve the bearer token into a Requester or fail with 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()

    payload = decode_access_token(credentials.credentials)
    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthenticationError()

    # The stored role wins over the token claim so demotions apply immediately
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise AuthenticationError()

    return Requester(id=user.id, role=user.role)


async def require_admin(requester: Requester = Depends(get_current_requester)) -> Requester:
    """Route-level gate for admin-only endpoints."""
    require_capability(requester, None, allowed=frozenset({ADMIN}), action="access this route")
    return requester
