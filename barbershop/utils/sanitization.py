import html
from typing import Optional


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def sanitize_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Trim and escape free-text input (notes, comments, responses).

    Raises:
        ValueError: If input exceeds max_length
    """
    if value is None:
        return None

    value = str(value).strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return sanitize_string(value)
