"""
Shared request and credential helpers.
Provides PIN hashing/verification and request body parsing used by every
service blueprint.
"""

from typing import Any, Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import request

from postdesk.errors import ValidationError

ph = PasswordHasher()

PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 8


# --- REQUEST PARSING ---
def read_payload() -> Dict[str, Any]:
    """
    Return the request body as a dict.

    JSON bodies are preferred; form-encoded and multipart bodies fall back to
    `request.form`. An unparseable or empty body yields {}.
    """
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def require_fields(data: Dict[str, Any], *names: str) -> None:
    """
    Raise ValidationError naming every field that is absent or blank.
    """
    missing = [n for n in names if data.get(n) is None or str(data.get(n)).strip() == ""]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_post_id(value: Any) -> int:
    """Coerce a post id from JSON/form input into a positive int."""
    try:
        post_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Post id must be an integer")
    if post_id < 1:
        raise ValidationError("Post id must be positive")
    return post_id


# --- PIN HASHING ---
def normalize_pin(pin: Any) -> str:
    """
    Validate a PIN and return it as a string of digits.

    Raises:
        ValidationError: If the PIN is not 4-8 digits.
    """
    pin = str(pin).strip() if pin is not None else ""
    if not (pin.isascii() and pin.isdigit()) or not PIN_MIN_LENGTH <= len(pin) <= PIN_MAX_LENGTH:
        raise ValidationError(f"PIN must be {PIN_MIN_LENGTH}-{PIN_MAX_LENGTH} digits")
    return pin


def hash_pin(pin: str) -> str:
    """Return a salted Argon2 hash of the PIN."""
    return ph.hash(pin)


def verify_pin(pin_hash: Optional[str], pin: str) -> bool:
    """
    Check a PIN against a stored hash.

    Returns:
        bool: True on match. Mismatches and malformed hashes return False.
    """
    if not pin_hash:
        return False
    try:
        return ph.verify(pin_hash, pin)
    except (VerificationError, InvalidHashError):
        return False
