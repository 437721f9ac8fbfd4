import logging

from app.core.plate_rules import normalize_plate_text
from app.services.storefront_store import StorefrontStore

logger = logging.getLogger(__name__)


AVAILABLE_MESSAGE = "This plate text is available!"
TAKEN_MESSAGE = "This plate text is already taken. Please choose another."


class AvailabilityService:
    """Answers whether a plate text can still be ordered."""

    def __init__(self, store: StorefrontStore):
        self.store = store

    async def is_available(self, text: str) -> bool:
        """
        True when no order line item and no reserved catalog entry carries
        this text. Matching is exact and case-insensitive.

        Storage failures propagate as StorageUnavailable; they are never
        reported as "taken".
        """
        return not await self.store.is_text_reserved(normalize_plate_text(text))

    async def check(self, text: str) -> dict:
        """Availability payload for the public check endpoint."""
        normalized = normalize_plate_text(text)
        available = await self.is_available(normalized)
        logger.debug(f"Availability check for {normalized}: {available}")
        return {
            "text": normalized,
            "is_available": available,
            "message": AVAILABLE_MESSAGE if available else TAKEN_MESSAGE,
        }
