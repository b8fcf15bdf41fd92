"""Age derived from a stored date of birth."""

import logging
from datetime import date, datetime
from typing import Optional

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'
MAX_AGE_YEARS = 150


def parse_dob(dob: str) -> Optional[date]:
    """Parse a YYYY-MM-DD date of birth, returning None when it is not one."""
    if not dob or not isinstance(dob, str):
        return None
    try:
        return datetime.strptime(dob.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def calculate_age(dob: str, today: Optional[date] = None) -> int:
    """
    Calculate a person's age in whole years.

    Display helper: invalid, future, or implausibly old (more than 150
    calendar years back) dates all give 0 instead of raising.

    Args:
        dob: Date of birth in YYYY-MM-DD format
        today: Reference date (defaults to the current local date)

    Returns:
        Non-negative age in years
    """
    birth_date = parse_dob(dob)
    if birth_date is None:
        logger.debug(f"Invalid date of birth: {dob!r}")
        return 0

    if today is None:
        today = date.today()

    if birth_date > today:
        logger.debug(f"Date of birth in the future: {dob}")
        return 0

    year_diff = today.year - birth_date.year
    if year_diff > MAX_AGE_YEARS:
        logger.debug(f"Date of birth exceeds {MAX_AGE_YEARS} years: {dob}")
        return 0

    age = year_diff
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1

    return max(0, age)
