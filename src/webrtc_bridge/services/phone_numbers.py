"""Destination number validation."""

from ..errors import InvalidPhoneNumber
from ..settings import PHONE_NUMBER_PATTERN


def is_dialable(tn: str | None) -> bool:
    """Check for a US E.164 number: +1, area code starting 2-9, nine more digits."""
    return bool(tn) and PHONE_NUMBER_PATTERN.match(tn) is not None


def validate_phone_number(tn: str | None) -> str:
    """Return ``tn`` unchanged if dialable.

    Raises:
        InvalidPhoneNumber: If the number is missing or malformed
    """
    if not is_dialable(tn):
        raise InvalidPhoneNumber(f"missing or incorrectly formatted telephone number: {tn!r}")
    return tn
