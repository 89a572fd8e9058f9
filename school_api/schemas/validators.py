"""Custom validators and types."""

import re
from typing import Annotated

from pydantic import AfterValidator, Field

# Digits with optional leading +, spaces, dashes, dots and parentheses
PHONE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")


def validate_phone_number(value: str) -> str:
    """
    Validate and normalize a phone number.

    Accepts formats:
    - +15551234567
    - +1 (555) 123-4567
    - 555.123.4567

    Returns the digits with an optional leading +, e.g. +15551234567
    """
    normalized = re.sub(r"[\s\-\.\(\)]", "", value)

    if not PHONE_PATTERN.match(normalized):
        raise ValueError("Invalid phone number. Use 7 to 15 digits, e.g. +1 555 123 4567")

    return normalized


def validate_website(value: str) -> str:
    """Require an http(s) scheme so stored links are clickable."""
    value = value.strip()
    if not re.match(r"^https?://[^\s/$.?#].[^\s]*$", value, re.IGNORECASE):
        raise ValueError("Invalid website URL. Must start with http:// or https://")
    return value


# Annotated type for phone number validation
PhoneNumber = Annotated[
    str,
    Field(min_length=7, max_length=20),
    AfterValidator(validate_phone_number),
]

Website = Annotated[
    str,
    Field(max_length=200),
    AfterValidator(validate_website),
]
