"""Field validation helpers shared by schemas and the account flow.

Each check returns the cleaned value or raises ``ValueError`` with a message
suitable for showing to a user, so they plug straight into pydantic
``field_validator`` hooks.
"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
ISBN_PATTERN = re.compile(r"^[\dX]+$")

MIN_PASSWORD_LENGTH = 8


def validate_email(value: Optional[str]) -> str:
    """Validate and trim an email address."""
    if value is None or not value.strip():
        raise ValueError("Email is required")
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address")
    return value


def validate_password(value: Optional[str]) -> str:
    """Validate password strength.

    Requires at least 8 characters with an uppercase letter, a lowercase
    letter and a digit.
    """
    if not value:
        raise ValueError("Password is required")
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    return value


def validate_min_length(value: Optional[str], min_length: int, field_name: str) -> str:
    """Trim a required text field and enforce a minimum length."""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    value = value.strip()
    if len(value) < min_length:
        raise ValueError(f"{field_name} must be at least {min_length} characters long")
    return value


def validate_isbn(value: Optional[str]) -> Optional[str]:
    """Normalize an optional ISBN-10 or ISBN-13 (hyphens and spaces removed)."""
    if not value:
        return None
    cleaned = re.sub(r"[-\s]", "", value).upper()
    if len(cleaned) not in (10, 13):
        raise ValueError("ISBN must be 10 or 13 digits long")
    if not ISBN_PATTERN.match(cleaned):
        raise ValueError("ISBN can only contain numbers and X")
    return cleaned
