from __future__ import annotations

import secrets

from werkzeug.security import check_password_hash, generate_password_hash

# No 0/O, 1/l/I: generated passwords are read out of an email.
PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"


def generate_password(length: int = 12) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(max(8, length)))


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        return check_password_hash(encoded, password)
    except ValueError:
        # Unknown or malformed hash method.
        return False
