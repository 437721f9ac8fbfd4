from typing import Optional, List
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import OperatorCaller, Store
from app.models.plate import PlateType
from app.schemas.plate import AvailabilityResponse, PlateCreate, PlateResponse, PlateUpdate
from app.services.availability_service import AvailabilityService
from app.services.plate_service import PlateService


router = APIRouter(tags=["Plates"])


@router.get("", response_model=List[PlateResponse])
async def list_plates(
    store: Store,
    plate_type: Optional[PlateType] = Query(None, alias="type"),
):
    """Catalog entries, newest first."""
    service = PlateService(store)
    return await service.list_plates(plate_type)


# Declared before /{plate_id} so the literal path wins
@router.get("/check-availability/{text}", response_model=AvailabilityResponse)
async def check_availability(
    text: str,
    store: Store,
):
    """Public check whether a plate text can still be ordered."""
    service = AvailabilityService(store)
    return await service.check(text)


@router.get("/{plate_id}", response_model=PlateResponse)
async def get_plate(
    plate_id: uuid.UUID,
    store: Store,
):
    service = PlateService(store)
    return await service.get_plate(plate_id)


@router.post(
    "",
    response_model=PlateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_plate(
    data: PlateCreate,
    store: Store,
    operator: OperatorCaller,
):
    """Add a plate to the catalog. Operators only."""
    service = PlateService(store)
    return await service.create_plate(data, operator)


@router.put("/{plate_id}", response_model=PlateResponse)
async def update_plate(
    plate_id: uuid.UUID,
    data: PlateUpdate,
    store: Store,
    operator: OperatorCaller,
):
    service = PlateService(store)
    return await service.update_plate(plate_id, data, operator)


@router.delete("/{plate_id}")
async def delete_plate(
    plate_id: uuid.UUID,
    store: Store,
    operator: OperatorCaller,
):
    """Remove an unreserved plate from the catalog. Operators only."""
    service = PlateService(store)
    await service.delete_plate(plate_id, operator)
    return {"message": "Plate removed"}
