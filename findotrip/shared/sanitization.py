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
    return html.escape(value.strip(), quote=True)


def sanitize_list(values: Optional[list]) -> list:
    """Escape every string in a list of user-provided tags (pros, cons, amenities...)"""
    if not values:
        return []
    return [sanitize_string(v) if isinstance(v, str) else v for v in values]
