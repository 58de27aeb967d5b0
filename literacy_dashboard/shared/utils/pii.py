"""Salted hashing of sign-in emails for log records.

Auth events log ``user_hash`` instead of the email. The salt comes from
``IDENTIFIER_HASH_SALT`` and is installed once by ``create_app``.
"""
import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)

MIN_SALT_LENGTH = 32

_IDENTIFIER_SALT: Optional[str] = None


def configure_identifier_salt(salt: str) -> None:
    """Install the salt; shorter than MIN_SALT_LENGTH raises ValueError."""
    global _IDENTIFIER_SALT
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "IDENTIFIER_SALT_REJECTED",
            extra={"salt_length": len(salt or ""), "min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"Identifier salt must be at least {MIN_SALT_LENGTH} characters")

    _IDENTIFIER_SALT = salt
    logger.info("IDENTIFIER_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_identifier(email: str) -> str:
    """Hex SHA-256 of salt + normalised email.

    Case and surrounding whitespace are ignored, so one account always
    maps to one hash. Raises RuntimeError before the salt is configured.
    """
    if _IDENTIFIER_SALT is None:
        raise RuntimeError("Identifier salt not configured")

    normalised = email.strip().lower()
    return hashlib.sha256(f"{_IDENTIFIER_SALT}{normalised}".encode("utf-8")).hexdigest()
