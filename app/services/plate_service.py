from typing import List
import uuid
import logging

from app.core.enum_utils import get_enum_value
from app.core.exceptions import NotFound, ValidationError
from app.core.permissions import Caller, PermissionChecker
from app.core.plate_rules import validate_background_index, validate_plate_text
from app.models.plate import Plate
from app.schemas.plate import PlateCreate, PlateUpdate
from app.services.pricing_service import resolve_unit_price
from app.services.storefront_store import StorefrontStore

logger = logging.getLogger(__name__)


class PlateService:
    """Plate catalog management."""

    def __init__(self, store: StorefrontStore):
        self.store = store

    async def list_plates(self, plate_type=None) -> List[Plate]:
        """Catalog entries newest first, optionally filtered by tier."""
        return await self.store.list_plates(get_enum_value(plate_type))

    async def get_plate(self, plate_id: uuid.UUID) -> Plate:
        plate = await self.store.get_plate(plate_id)
        if plate is None:
            raise NotFound("Plate not found", details={"plate_id": str(plate_id)})
        return plate

    async def create_plate(self, data: PlateCreate, caller: Caller) -> Plate:
        """
        Add a catalog entry. The text is validated for its tier and the
        price defaults to the tier price. A text already in the catalog
        raises PlateUnavailable.
        """
        PermissionChecker(caller).require_operator()

        plate_type = get_enum_value(data.plate_type)
        text = validate_plate_text(data.text, plate_type)
        background_index = validate_background_index(plate_type, data.background_index)

        plate = Plate(
            text=text,
            plate_type=plate_type,
            price=resolve_unit_price(plate_type, data.price),
            description=data.description,
            background_index=background_index,
            is_available=True,
        )

        try:
            await self.store.add_plate(plate)
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(f"Plate {plate.text} ({plate.plate_type}) added to catalog by {caller.id}")
        return plate

    async def update_plate(
        self,
        plate_id: uuid.UUID,
        data: PlateUpdate,
        caller: Caller,
    ) -> Plate:
        """Update description, price or background. Text and tier are fixed."""
        PermissionChecker(caller).require_operator()
        plate = await self.get_plate(plate_id)

        update_data = data.model_dump(exclude_unset=True)
        if "background_index" in update_data:
            update_data["background_index"] = validate_background_index(
                plate.plate_type, update_data["background_index"]
            )
        if update_data.get("price") is None:
            update_data.pop("price", None)

        try:
            for field, value in update_data.items():
                setattr(plate, field, value)
            await self.store.flush()
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        return plate

    async def delete_plate(self, plate_id: uuid.UUID, caller: Caller) -> None:
        """Remove an unreserved catalog entry."""
        PermissionChecker(caller).require_operator()
        plate = await self.get_plate(plate_id)

        if not plate.is_available:
            raise ValidationError(
                "Reserved plates cannot be removed from the catalog",
                details={"text": plate.text},
            )

        try:
            await self.store.delete_plate(plate)
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            raise

        logger.info(f"Plate {plate.text} removed from catalog by {caller.id}")
