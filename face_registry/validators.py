"""
Input Validation Module

Checks applied to user input before it reaches the registry, which stores
whatever it is given.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .age import MAX_AGE_YEARS, parse_dob

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
GENDER_OPTIONS = ('male', 'female', 'other')

_TAG_RE = re.compile(r'<[^>]*>')
_NAME_DISALLOWED_RE = re.compile(r"[^a-zA-Z\s\-'.À-ÿ]")
_WHITESPACE_RE = re.compile(r'\s+')


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


def validate_name(name: Optional[str], min_length: int = NAME_MIN_LENGTH,
                  max_length: int = NAME_MAX_LENGTH) -> ValidationResult:
    """
    Validate a person's name after trimming.

    Args:
        name: Raw name input
        min_length: Minimum trimmed length
        max_length: Maximum trimmed length

    Returns:
        ValidationResult with an error message when invalid
    """
    if not name or not name.strip():
        return ValidationResult(False, 'Name is required')

    trimmed = name.strip()
    if len(trimmed) < min_length:
        return ValidationResult(False, f'Name must be at least {min_length} characters long')
    if len(trimmed) > max_length:
        return ValidationResult(False, f'Name must be less than {max_length} characters')

    return ValidationResult(True)


def validate_dob(dob: Optional[str], today: Optional[date] = None) -> ValidationResult:
    """Validate a YYYY-MM-DD date of birth: parseable, not in the future, plausible."""
    if not dob:
        return ValidationResult(False, 'Date of birth is required')

    birth_date = parse_dob(dob)
    if birth_date is None:
        return ValidationResult(False, 'Invalid date format, expected YYYY-MM-DD')

    if today is None:
        today = date.today()
    if birth_date > today:
        return ValidationResult(False, 'Date of birth cannot be in the future')
    if today.year - birth_date.year > MAX_AGE_YEARS:
        return ValidationResult(False, 'Date of birth exceeds reasonable limit')

    return ValidationResult(True)


def validate_gender(gender: Optional[str]) -> ValidationResult:
    """Gender is optional; when given it must be one of GENDER_OPTIONS."""
    if not gender:
        return ValidationResult(True)
    if gender.lower() not in GENDER_OPTIONS:
        return ValidationResult(False, f"Gender must be one of: {', '.join(GENDER_OPTIONS)}")
    return ValidationResult(True)


def sanitize_name(name: Optional[str], max_length: int = NAME_MAX_LENGTH) -> str:
    """
    Clean a name for storage.

    Strips HTML tags, keeps letters (accented Latin-1 included), spaces,
    hyphens, apostrophes and periods, collapses whitespace and truncates.
    """
    if not name or not isinstance(name, str):
        return ''

    cleaned = _TAG_RE.sub('', name.strip())
    cleaned = _NAME_DISALLOWED_RE.sub('', cleaned)
    cleaned = _WHITESPACE_RE.sub(' ', cleaned).strip()
    return cleaned[:max_length]
