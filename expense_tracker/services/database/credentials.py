"""Credential checks and password hashing shared by every backend."""

import re

import bcrypt

from expense_tracker.services.database.interface import (
    InvalidEmailError,
    WeakPasswordError,
)


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DEFAULT_MIN_PASSWORD_LENGTH = 6
# bcrypt only accepts this many bytes of password
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_new_credentials(
    email: str,
    password: str,
    min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
) -> str:
    """
    Check sign-up input and return the normalized email.

    Raises:
        InvalidEmailError: Email doesn't look like local@domain.tld
        WeakPasswordError: Password shorter than the minimum, or longer
            than bcrypt can hash
    """
    normalized = normalize_email(email)
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidEmailError("The email address is badly formatted.")
    if len(password) < min_password_length:
        raise WeakPasswordError(
            f"The password must be {min_password_length} characters long or more."
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise WeakPasswordError(
            f"The password must be at most {MAX_PASSWORD_BYTES} bytes long."
        )
    return normalized


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
