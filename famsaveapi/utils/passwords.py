"""Password hashing utilities (bcrypt)"""

import logging

import bcrypt

from famsaveapi.config import SETTINGS
from famsaveapi.errors import PasswordValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; longer input is refused instead of
# being silently truncated
MAX_PASSWORD_BYTES = 72

_dummy_hash = None


def hash_password(password, rounds=None):
    """Hash a plaintext password with a fresh salt.

    Args:
        password: Plaintext password
        rounds: bcrypt cost factor, defaults to ``SETTINGS["BCRYPT_ROUNDS"]``

    Returns:
        str: bcrypt hash (``$2b$<cost>$...``), 60 characters

    Raises:
        PasswordValidationError: If the password is empty or too long
    """
    if not password:
        raise PasswordValidationError("Password is required")
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise PasswordValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
        )
    rounds = rounds or SETTINGS.get("BCRYPT_ROUNDS", 10)
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password, password_hash):
    """Check a plaintext password against a stored bcrypt hash.

    The comparison is done by ``bcrypt.checkpw`` which is constant time.
    Malformed hashes and oversized passwords verify as ``False``.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"[AUTH]: Password verification rejected input: {e}")
        return False


def burn_verification(password):
    """Run one verification against a throwaway hash.

    Used when the account does not exist so the response time matches a
    real password check.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("famsave-timing-equaliser")
    verify_password(password, _dummy_hash)
