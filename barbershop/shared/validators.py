"""Shared validation utilities"""

import re
from typing import Optional


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized number: digits only, with a leading + when one was given

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)

    # E.164 allows at most 15 digits
    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must contain 7 to 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_latitude(value: Optional[float]) -> Optional[float]:
    if value is not None and not -90 <= value <= 90:
        raise ValueError("Latitude must be between -90 and 90")
    return value


def validate_longitude(value: Optional[float]) -> Optional[float]:
    if value is not None and not -180 <= value <= 180:
        raise ValueError("Longitude must be between -180 and 180")
    return value


def validate_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return url
    url = url.strip()
    if not re.match(r"^https?://[^\s/$.?#].[^\s]*$", url, re.IGNORECASE):
        raise ValueError("Invalid URL format")
    return url


def slugify(value: str) -> str:
    """Lowercase, hyphen-separated slug built from a display name"""
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    if not slug:
        raise ValueError("Cannot build a slug from an empty name")
    return slug


def validate_slug(slug: Optional[str]) -> Optional[str]:
    if slug is None:
        return slug
    if not re.match(r"^[a-z0-9]+(?:-[a-z0-9]+)*$", slug):
        raise ValueError("Slug may contain lowercase letters, digits and single hyphens only")
    return slug
