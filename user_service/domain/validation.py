"""
Validation of inbound user representations and identifiers.
"""

import uuid

from email_validator import validate_email, EmailNotValidError

from .ports import ValidationError
from .schema import UserInput


def validate_user(user: UserInput) -> None:
    """
    Check required fields and email format.

    Rules are checked in a fixed order and only the first violation
    is reported.

    Raises:
        ValidationError: With the message of the first violated rule
    """
    if not user.first_name:
        raise ValidationError("first name is required")
    if not user.last_name:
        raise ValidationError("last name is required")
    if not user.nickname:
        raise ValidationError("nickname is required")
    if not user.password:
        raise ValidationError("password is required")
    if not user.email:
        raise ValidationError("email is required")
    if not is_valid_email(user.email):
        raise ValidationError("email is invalid")
    if not user.country:
        raise ValidationError("country is required")


def is_valid_email(value: str) -> bool:
    """
    Accept an RFC 5322 mailbox, either a bare address or
    a "Display Name <address>" form. The whole string must parse.
    """
    try:
        validate_email(
            value,
            allow_display_name=True,
            allow_quoted_local=True,
            allow_domain_literal=True,
            globally_deliverable=False,
            check_deliverability=False
        )
    except EmailNotValidError:
        return False
    return True


def parse_user_id(value: str) -> str:
    """
    Parse a user identifier taken from the request path.

    Returns:
        Canonical UUID text

    Raises:
        ValidationError: If the value is not a UUID
    """
    try:
        return str(uuid.UUID(value))
    except (ValueError, TypeError) as e:
        raise ValidationError(f"incorrect user ID format: {e}") from e
