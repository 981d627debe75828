"""
Password hashing utilities for Control Room.
"""

import bcrypt


BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The password to hash.

    Returns:
        The bcrypt hash of the password.
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its bcrypt hash.

    Args:
        password: The password to verify.
        password_hash: The bcrypt hash to check against.

    Returns:
        True if the password matches, False otherwise.
    """
    if not password or not password_hash:
        return False

    try:
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except (ValueError, TypeError):
        return False


def is_acceptable_password(password: str) -> bool:
    """Check the minimum password policy."""
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH
