"""
Enum Utilities for VARCHAR-based Status Fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR - NOT a native database ENUM
• SQLAlchemy: String(n) with Mapped[str]
• Pydantic: Python Enum for API validation
• API Response: Use string directly (NO .value needed)
• Case: enum values are stored in lowercase (e.g. "payment_completed")

DATA FLOW:
━━━━━━━━━━
INPUT (API Request):
    Pydantic Enum → .value → String → Database
    Example: OrderStatus.PENDING → "pending" → VARCHAR

OUTPUT (API Response):
    Database → String → Return directly
"""

from enum import Enum
from typing import Any, Optional, TypeVar, Type


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Use this when you're unsure if the value is:
    - A Pydantic enum (from input) - has .value
    - A database string (from query) - is already a string

    Examples:
        >>> get_enum_value(OrderStatus.PENDING)
        'pending'
        >>> get_enum_value("pending")
        'pending'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a string value to an enum instance.

    Returns None if the value is not a member of ``enum_class``.

    Examples:
        >>> to_enum("pending", OrderStatus)
        OrderStatus.PENDING
        >>> to_enum("INVALID", OrderStatus)
        None
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(str(value))
    except ValueError:
        return None
