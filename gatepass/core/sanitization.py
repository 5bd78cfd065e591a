"""Input sanitization utilities."""
import re

from gatepass.core.constants import (
    MAX_SCANNED_TEXT_LENGTH,
    REGISTRATION_CODE_LENGTH,
    REGISTRATION_CODE_PREFIX,
)

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
_REGISTRATION_CODE = re.compile(
    rf'^{re.escape(REGISTRATION_CODE_PREFIX)}[A-Z0-9]{{{REGISTRATION_CODE_LENGTH}}}$'
)


def sanitize_scanned_text(raw: str) -> str:
    """
    Normalize text captured by a scanner or pasted by staff.

    Scanners commonly append a newline or carriage return; surrounding
    whitespace is dropped. Anything still containing control characters,
    or longer than any credential we issue, is rejected before decoding.

    Args:
        raw: Text as received from the client

    Returns:
        The trimmed text

    Raises:
        ValueError: If the text is empty, too long or contains control characters
    """
    if not isinstance(raw, str):
        raise ValueError("Scanned text must be a string")

    sanitized = raw.strip()

    if not sanitized:
        raise ValueError("Scanned text cannot be empty")

    if len(sanitized) > MAX_SCANNED_TEXT_LENGTH:
        raise ValueError(f"Scanned text exceeds maximum length of {MAX_SCANNED_TEXT_LENGTH} characters")

    if _CONTROL_CHARS.search(sanitized):
        raise ValueError("Scanned text contains control characters")

    return sanitized


def is_registration_code(value: str) -> bool:
    """True when ``value`` has the ``REG-XXXXXXXX`` shape."""
    return isinstance(value, str) and bool(_REGISTRATION_CODE.fullmatch(value))
