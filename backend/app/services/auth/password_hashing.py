"""bcrypt wrapper used when storing account credentials."""
from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31
# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class PasswordHashingError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.code = 'hashing_failure'
        self.message = message
        self.status = 500


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Return a salted bcrypt hash of ``password``.

    Raises:
        PasswordHashingError: invalid cost factor, over-long password, or a
            failure inside bcrypt.
    """
    if not isinstance(rounds, int) or not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
        raise PasswordHashingError(f"bcrypt rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}")
    if not isinstance(password, str):
        raise PasswordHashingError("password must be a string")
    try:
        encoded = password.encode('utf-8')
    except UnicodeEncodeError as e:
        raise PasswordHashingError(f"password cannot be encoded: {e}") from e
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise PasswordHashingError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
    try:
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode('utf-8')
    except (ValueError, TypeError) as e:
        logger.error(f"bcrypt hashing failed: {e}")
        raise PasswordHashingError(f"bcrypt hashing failed: {e}") from e


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` matches ``password_hash``; False on any malformed input."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError, AttributeError, UnicodeEncodeError):
        return False
