"""Username rules: default synthesis for new wallets and rename validation."""

import re

from identity.errors import ValidationFailure

USERNAME_MAX_LENGTH = 50
USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]+")
DEFAULT_USERNAME_PREFIX = "player_"


def default_username(wallet_address: str) -> str:
    """Derive the starting username from the address: `player_` plus the 8 hex digits after `0x`."""
    return f"{DEFAULT_USERNAME_PREFIX}{wallet_address[2:10]}"


def validate_username(username: str) -> None:
    """Validate a requested username: 1-50 chars, letters, digits, and underscores."""
    if not username or len(username) > USERNAME_MAX_LENGTH:
        raise ValidationFailure(f"Please enter a valid username (1-{USERNAME_MAX_LENGTH} characters)")
    if not USERNAME_PATTERN.fullmatch(username):
        raise ValidationFailure("Username must contain only alphanumeric characters or underscores")
