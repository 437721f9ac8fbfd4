"""
Plate text rules.

A plate text is normalized (trimmed, uppercased, emoji variation selector
dropped) before it is validated, priced, checked or stored. Each tier has
its own format:

    special          1-7 of A-Z0-9, must contain "00"
    standard_custom  4-7 of A-Z0-9, at most one heart glyph
    prestige         4-7 of A-Z0-9, optional background 1..3
"""
import re
from typing import Optional

from app.core.exceptions import ValidationError
from app.core.enum_utils import get_enum_value
from app.models.plate import PlateType


HEART = "\u2764"
VARIATION_SELECTOR = "\ufe0f"

MAX_TEXT_LENGTH = 7
PRESTIGE_BACKGROUNDS = (1, 2, 3)

_SPECIAL_PATTERN = re.compile(r"^[A-Z0-9]{1,7}$")
_STANDARD_CUSTOM_PATTERN = re.compile("^[A-Z0-9\u2764]{4,7}$")
_PRESTIGE_PATTERN = re.compile(r"^[A-Z0-9]{4,7}$")


def normalize_plate_text(text: str) -> str:
    """Canonical form used for every comparison and for storage."""
    if text is None:
        return ""
    return text.strip().replace(VARIATION_SELECTOR, "").upper()


def validate_plate_text(text: str, plate_type) -> str:
    """
    Normalize ``text`` and check it against the format rule of its tier.

    Returns the normalized text. Raises ValidationError on any violation.
    """
    normalized = normalize_plate_text(text)
    tier = get_enum_value(plate_type)

    if not normalized:
        raise ValidationError("Please enter plate text")

    if tier == PlateType.SPECIAL.value:
        if not _SPECIAL_PATTERN.match(normalized) or "00" not in normalized:
            raise ValidationError(
                "Special plates must include at least two zeros (00) and have max 7 characters",
                details={"text": normalized, "plate_type": tier},
            )
    elif tier == PlateType.STANDARD_CUSTOM.value:
        if not _STANDARD_CUSTOM_PATTERN.match(normalized) or normalized.count(HEART) > 1:
            raise ValidationError(
                "Star plates must have 4-7 characters (letters, numbers, or one heart)",
                details={"text": normalized, "plate_type": tier},
            )
    elif tier == PlateType.PRESTIGE.value:
        if not _PRESTIGE_PATTERN.match(normalized):
            raise ValidationError(
                "Premium plates must have 4-7 characters (letters or numbers)",
                details={"text": normalized, "plate_type": tier},
            )
    else:
        raise ValidationError(f"Unknown plate type: {tier}", details={"plate_type": tier})

    return normalized


def validate_background_index(plate_type, background_index: Optional[int]) -> Optional[int]:
    """Only prestige plates carry a background, chosen from 1..3."""
    if background_index is None:
        return None

    tier = get_enum_value(plate_type)
    if tier != PlateType.PRESTIGE.value:
        raise ValidationError(
            "Backgrounds are only available for prestige plates",
            details={"plate_type": tier, "background_index": background_index},
        )
    if background_index not in PRESTIGE_BACKGROUNDS:
        raise ValidationError(
            "Background must be 1, 2 or 3",
            details={"background_index": background_index},
        )
    return background_index
