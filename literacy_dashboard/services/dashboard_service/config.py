"""Dashboard Service configuration.

Credentials, session signing and the revalidation secret come from the
environment. The built-in users and secrets are for local development
only.
"""
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from literacy_dashboard.shared.privacy import MINIMUM_THRESHOLD

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "viewer"
ROLES = frozenset({"admin", "viewer"})

# 30 days
DEFAULT_SESSION_MAX_AGE_SECONDS = 30 * 24 * 60 * 60


@dataclass(frozen=True)
class UserCredential:
    """An account allowed to sign in to the dashboard."""
    email: str
    password: str
    role: str = DEFAULT_ROLE
    name: str = ""

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown role {self.role!r}, expected one of {sorted(ROLES)}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserCredential":
        return cls(
            email=data["email"],
            password=data["password"],
            role=data.get("role") or DEFAULT_ROLE,
            name=data.get("name", ""),
        )


DEV_USERS: Tuple[UserCredential, ...] = (
    UserCredential("admin@algoma.ca", "admin123", role="admin", name="Admin User"),
    UserCredential("viewer@algoma.ca", "viewer123", role="viewer", name="Viewer User"),
)


@dataclass(frozen=True)
class DashboardConfig:
    """Configuration for the dashboard API."""
    suppression_threshold: int = MINIMUM_THRESHOLD
    revalidate_token: Optional[str] = None
    session_secret: str = "insecure_dev_session_secret_change_in_production"
    session_max_age_seconds: int = DEFAULT_SESSION_MAX_AGE_SECONDS
    session_https_only: bool = False
    identifier_salt: str = "default_dev_salt_change_in_production_32chars"
    users: Tuple[UserCredential, ...] = DEV_USERS

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        """Create config from environment variables.

        Environment variables:
            SUPPRESSION_THRESHOLD: Minimum group size (default 5)
            REVALIDATE_TOKEN: Bearer secret for POST /api/revalidate
            SESSION_SECRET: Session cookie signing key
            SESSION_MAX_AGE_SECONDS: Session lifetime (default 30 days)
            SESSION_HTTPS_ONLY: "true" to mark the cookie Secure
            IDENTIFIER_HASH_SALT: Salt for hashing emails in logs
            DASHBOARD_USERS: JSON list of {email, password, role, name}

        Raises:
            ValueError: If DASHBOARD_USERS is not a valid user list
        """
        defaults = cls()
        users = defaults.users
        raw_users = os.getenv("DASHBOARD_USERS")
        if raw_users:
            try:
                users = tuple(UserCredential.from_dict(u) for u in json.loads(raw_users))
            except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
                logger.critical(
                    "DASHBOARD_USERS_INVALID",
                    extra={"error_type": type(e).__name__}
                )
                raise ValueError("DASHBOARD_USERS must be a JSON list of user objects") from e
        else:
            logger.warning("DASHBOARD_USERS_DEFAULTED", extra={"users": len(users)})

        return cls(
            suppression_threshold=int(
                os.getenv("SUPPRESSION_THRESHOLD", str(MINIMUM_THRESHOLD))
            ),
            revalidate_token=os.getenv("REVALIDATE_TOKEN") or None,
            session_secret=os.getenv("SESSION_SECRET", defaults.session_secret),
            session_max_age_seconds=int(
                os.getenv("SESSION_MAX_AGE_SECONDS", str(DEFAULT_SESSION_MAX_AGE_SECONDS))
            ),
            session_https_only=os.getenv("SESSION_HTTPS_ONLY", "false").lower() == "true",
            identifier_salt=os.getenv("IDENTIFIER_HASH_SALT", defaults.identifier_salt),
            users=users,
        )
