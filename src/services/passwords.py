"""Password hashing with bcrypt."""

import logging

import bcrypt

from domain.model.errors import ValidationError
from utils.settings import BCRYPT_ROUNDS

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash password using bcrypt with a fresh salt.

    Raises:
        ValidationError: password is empty or blank
    """
    if not password or not password.strip():
        raise ValidationError("Password is required")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain: str, hashed: str | None) -> bool:
    """Check a password against a stored bcrypt hash.

    bcrypt.checkpw compares in constant time. A missing or corrupt hash
    never matches.
    """
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False
