"""Messaging rules: who may message whom, thread types and text previews"""

import re

from ...shared.constants import ADMIN, CUSTOMER, PROVIDER_ROLES

# Conversation types
CUSTOMER_PROVIDER = "CUSTOMER_PROVIDER"
CUSTOMER_ADMIN = "CUSTOMER_ADMIN"
PROVIDER_ADMIN = "PROVIDER_ADMIN"

# Message types
TEXT = "TEXT"
SYSTEM = "SYSTEM"

PREVIEW_LENGTH = 140
DELETED_PLACEHOLDER = "This message was deleted"

_PROVIDER = "PROVIDER"

_TYPES = {
    frozenset((CUSTOMER, _PROVIDER)): CUSTOMER_PROVIDER,
    frozenset((CUSTOMER, ADMIN)): CUSTOMER_ADMIN,
    frozenset((_PROVIDER, ADMIN)): PROVIDER_ADMIN,
}

_REFUSALS = {
    frozenset((CUSTOMER,)): "Customers can only message service providers and admins",
    frozenset((_PROVIDER,)): "Providers can only message customers and admins",
    frozenset((ADMIN,)): "Admins cannot open conversations with each other",
}


def role_group(role: str) -> str:
    if role in PROVIDER_ROLES:
        return _PROVIDER
    if role in (CUSTOMER, ADMIN):
        return role
    raise ValueError(f"Unknown role: {role}")


def conversation_type(role_a: str, role_b: str) -> str:
    """
    Thread type for two participants' roles.

    Customers talk to providers and admins, providers talk to customers and
    admins. Any other pairing raises ValueError with a user-facing reason.
    """
    groups = frozenset((role_group(role_a), role_group(role_b)))
    if groups in _TYPES:
        return _TYPES[groups]
    raise ValueError(_REFUSALS[groups])


def preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    text = " ".join(content.split())
    if len(text) <= length:
        return text
    return text[: length - 3].rstrip() + "..."


def snippet(content: str, term: str, radius: int = 40) -> str:
    """Text around the first case-insensitive match of term"""
    text = " ".join(content.split())
    match = re.search(re.escape(term), text, re.IGNORECASE)
    if match is None:
        return preview(text)
    start = max(0, match.start() - radius)
    end = min(len(text), match.end() + radius)
    return ("..." if start else "") + text[start:end] + ("..." if end < len(text) else "")
