"""Salted scrypt password hashing."""
import hashlib
import hmac
import secrets

SALT_BYTES = 16
KEY_LENGTH = 64

# Matches Node's crypto.scryptSync defaults.
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1


def _derive(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    """Hash a password as ``salt:derived_key_hex``."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{salt}:{_derive(password, salt).hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored ``salt:derived_key_hex`` string."""
    salt, _, key = (stored or "").partition(":")
    if not salt or not key:
        return False
    try:
        expected = bytes.fromhex(key)
    except ValueError:
        return False
    derived = _derive(password, salt)
    if len(expected) != len(derived):
        return False
    return hmac.compare_digest(expected, derived)
