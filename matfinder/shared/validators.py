"""Shared validation utilities"""

import re
from typing import Optional
from urllib.parse import urlparse

TIME_24H_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
TIME_12H_PATTERN = re.compile(r"^(1[0-2]|0?[1-9]):([0-5]\d)\s*([AaPp])\.?\s*[Mm]\.?$")
USER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")


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


def validate_user_name(user_name: Optional[str]) -> Optional[str]:
    """User names are 3-30 letters, digits, dots, dashes or underscores"""
    if user_name is None:
        return user_name

    user_name = user_name.strip()
    if not USER_NAME_PATTERN.match(user_name):
        raise ValueError(
            "User name must be 3-30 characters: letters, numbers, '.', '-' or '_'"
        )
    return user_name


def normalize_time(value: str) -> str:
    """
    Normalize a mat time to 24-hour HH:MM.

    Accepts "18:30", "6:30 PM", "6:30pm" and "6:30 p.m.".

    Raises:
        ValueError: If the time cannot be parsed
    """
    if value is None:
        raise ValueError("Time is required")

    text = value.strip()

    match = TIME_24H_PATTERN.match(text)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    match = TIME_12H_PATTERN.match(text)
    if match:
        hour = int(match.group(1)) % 12
        if match.group(3).lower() == "p":
            hour += 12
        return f"{hour:02d}:{match.group(2)}"

    raise ValueError(f"Invalid time format: {value}. Use HH:MM or h:mm AM/PM")


def format_display_time(value: str) -> str:
    """Format a stored HH:MM time as h:mm AM/PM"""
    hour_text, minute = normalize_time(value).split(":")
    hour = int(hour_text)
    suffix = "AM" if hour < 12 else "PM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute} {suffix}"


def validate_website_url(url: Optional[str]) -> Optional[str]:
    """
    Validate a gym website. A bare domain gets an https:// prefix.

    Raises:
        ValueError: If the URL has no usable host or a non-http scheme
    """
    if url is None:
        return url

    url = url.strip()
    if not url:
        return None

    if "://" not in url:
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError("Website must use http or https")
    host = parsed.hostname or ""
    if "." not in host or host.startswith(".") or host.endswith(".") or " " in url:
        raise ValueError("Invalid gym website URL")

    return url


def validate_latitude(value: Optional[float]) -> Optional[float]:
    if value is not None and not -90.0 <= value <= 90.0:
        raise ValueError("Latitude must be between -90 and 90")
    return value


def validate_longitude(value: Optional[float]) -> Optional[float]:
    if value is not None and not -180.0 <= value <= 180.0:
        raise ValueError("Longitude must be between -180 and 180")
    return value


def require_text(value: Optional[str], field_name: str) -> str:
    """Strip a required text field, rejecting blanks"""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value.strip()
