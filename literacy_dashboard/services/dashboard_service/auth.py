"""Dashboard sign-in against a configured credential list.

The signed-in user is kept in the session cookie. Dashboard routes depend
on ``require_user``; unauthenticated requests get 401.
"""
import hmac
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, Request, status

from literacy_dashboard.shared.utils import hash_identifier
from .config import DEFAULT_ROLE, UserCredential

logger = logging.getLogger(__name__)

SESSION_KEY = "user"


@dataclass(frozen=True)
class SessionUser:
    """User identity stored in the session; never holds the password."""
    email: str
    name: str
    role: str = DEFAULT_ROLE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["SessionUser"]:
        if not isinstance(data, dict) or not data.get("email"):
            return None
        return cls(
            email=data["email"],
            name=data.get("name") or data["email"],
            role=data.get("role") or DEFAULT_ROLE,
        )


def _matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def authenticate(
    users: Iterable[UserCredential],
    email: str,
    password: str,
) -> Optional[SessionUser]:
    """Check credentials against the configured users.

    Args:
        users: Allowed accounts
        email: Submitted email
        password: Submitted password

    Returns:
        SessionUser on a match, None otherwise

    Logs:
        - LOGIN_SUCCEEDED / LOGIN_FAILED with the hashed email
    """
    matched = None
    for user in users:
        # Every account is compared, matched or not
        email_ok = _matches(email, user.email)
        password_ok = _matches(password, user.password)
        if email_ok and password_ok and matched is None:
            matched = user

    user_hash = hash_identifier(email)
    if matched is None:
        logger.warning("LOGIN_FAILED", extra={"user_hash": user_hash})
        return None

    logger.info("LOGIN_SUCCEEDED", extra={"user_hash": user_hash, "role": matched.role})
    return SessionUser(email=matched.email, name=matched.name or matched.email, role=matched.role)


def login(request: Request, user: SessionUser) -> None:
    request.session[SESSION_KEY] = user.to_dict()


def logout(request: Request) -> None:
    request.session.pop(SESSION_KEY, None)


def current_user(request: Request) -> Optional[SessionUser]:
    return SessionUser.from_dict(request.session.get(SESSION_KEY))


def require_user(request: Request) -> SessionUser:
    """FastAPI dependency: the signed-in user, or 401."""
    user = current_user(request)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_admin(request: Request) -> SessionUser:
    """FastAPI dependency: a signed-in admin, 401 or 403 otherwise."""
    user = require_user(request)
    if user.role != "admin":
        logger.warning(
            "ADMIN_ACCESS_DENIED",
            extra={"user_hash": hash_identifier(user.email), "role": user.role}
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
