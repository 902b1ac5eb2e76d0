import bcrypt
import logging

logger = logging.getLogger(__name__)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a plain password against a stored bcrypt hash.

    Args:
        plain_password: the password as typed by the user.
        hashed_password: the stored hash (str).

    Returns:
        True when they match, False otherwise (including malformed hashes).
    """
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError as e:
        logger.error(f"Error verifying password (invalid hash?): {e}")
        return False


def get_password_hash(password: str) -> str:
    """
    Hashes a password with a fresh bcrypt salt.

    Args:
        password: the plain password.

    Returns:
        The hash as a str, ready to be stored.
    """
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')
