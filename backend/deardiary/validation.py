"""
Dear Diary — Input Validation Rules
=====================================

What:  The single ruleset for usernames, passwords, entry fields and path
       identifiers.
Who:   The auth and diary services on the server; DiaryAPI on the client,
       which runs the same checks before sending anything.
How:   Each validator collects every failing field, then raises one
       ValidationError whose `errors` dict is keyed by the camelCase wire
       field name. On success the normalized (trimmed) values are returned.

Limits:
    username         1-50 characters after trimming
    password         6-100 characters (not trimmed)
    title            1-200 characters after trimming
    content          1-10,000 characters after trimming
    entryDate        yyyy-MM-dd, a real calendar date
    identifier       [A-Za-z0-9_-]+
"""

import re
from datetime import date
from typing import Dict, Optional, Tuple

from deardiary.dates import parse_entry_date
from deardiary.exceptions import ValidationError

USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 10_000

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def _raise_if_any(errors: Dict[str, str]) -> None:
    if errors:
        # First message doubles as the summary, the way a form shows one banner.
        first = next(iter(errors.values()))
        raise ValidationError(message=first, errors=errors)


def _check_password(value: Optional[str], label: str) -> Optional[str]:
    if not value:
        return f"{label} is required"
    if len(value) < PASSWORD_MIN_LENGTH:
        return f"{label} must be at least {PASSWORD_MIN_LENGTH} characters"
    if len(value) > PASSWORD_MAX_LENGTH:
        return f"{label} must be {PASSWORD_MAX_LENGTH} characters or less"
    return None


def validate_username(username: Optional[str]) -> str:
    trimmed = (username or "").strip()
    if not trimmed:
        raise ValidationError("Username is required", field="username")
    if len(trimmed) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be {USERNAME_MAX_LENGTH} characters or less", field="username"
        )
    if not trimmed.isprintable():
        raise ValidationError("Username contains invalid characters", field="username")
    return trimmed


def validate_registration(
    username: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
) -> str:
    """
    Checks a registration form and returns the trimmed username.

    Raises:
        ValidationError: with one entry per failing field.
    """
    errors: Dict[str, str] = {}
    try:
        trimmed = validate_username(username)
    except ValidationError as exc:
        errors.update(exc.errors)
        trimmed = ""

    password_error = _check_password(password, "Password")
    if password_error:
        errors["password"] = password_error
    elif password != confirm_password:
        errors["confirmPassword"] = "Passwords do not match"

    _raise_if_any(errors)
    return trimmed


def validate_login(username: Optional[str], password: Optional[str]) -> str:
    """Login only checks presence; wrong values are an authentication failure."""
    errors: Dict[str, str] = {}
    trimmed = (username or "").strip()
    if not trimmed:
        errors["username"] = "Username is required"
    if not password:
        errors["password"] = "Password is required"
    _raise_if_any(errors)
    return trimmed


def validate_password_change(
    current_password: Optional[str],
    new_password: Optional[str],
    confirm_password: Optional[str],
) -> None:
    errors: Dict[str, str] = {}
    if not current_password:
        errors["currentPassword"] = "Current password is required"

    new_error = _check_password(new_password, "New password")
    if new_error:
        errors["newPassword"] = new_error
    elif new_password != confirm_password:
        errors["confirmPassword"] = "Passwords do not match"

    _raise_if_any(errors)


def validate_entry_fields(
    title: Optional[str],
    content: Optional[str],
    entry_date: Optional[str],
) -> Tuple[str, str, date]:
    """
    Validates the three editable entry fields.

    Returns:
        (trimmed title, trimmed content, parsed entry date)

    Raises:
        ValidationError: with one entry per failing field.
    """
    errors: Dict[str, str] = {}

    trimmed_title = (title or "").strip()
    if not trimmed_title:
        errors["title"] = "Title is required"
    elif len(trimmed_title) > TITLE_MAX_LENGTH:
        errors["title"] = f"Title must be {TITLE_MAX_LENGTH} characters or less"

    trimmed_content = (content or "").strip()
    if not trimmed_content:
        errors["content"] = "Content is required"
    elif len(trimmed_content) > CONTENT_MAX_LENGTH:
        errors["content"] = f"Content must be {CONTENT_MAX_LENGTH:,} characters or less"

    parsed_date = None
    if not entry_date:
        errors["entryDate"] = "Entry date is required"
    else:
        parsed_date = parse_entry_date(entry_date)
        if parsed_date is None:
            errors["entryDate"] = "Entry date must be a valid date in yyyy-MM-dd format"

    _raise_if_any(errors)
    return trimmed_title, trimmed_content, parsed_date


def validate_identifier(value: Optional[str]) -> str:
    """Rejects identifiers that could alter a URL path or query."""
    if not value or not IDENTIFIER_PATTERN.fullmatch(value):
        raise ValidationError("Invalid diary ID", field="id")
    return value


def validate_page_size(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    if limit < 1 or limit > maximum:
        raise ValidationError(f"Limit must be between 1 and {maximum}", field="limit")
    return limit


def normalize_page(page: Optional[int]) -> int:
    """Pages below 1 are read as the first page; there is no upper clamp."""
    if page is None or page < 1:
        return 1
    return page
