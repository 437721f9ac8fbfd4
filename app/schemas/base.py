"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that read ORM objects (`from_attributes=True`)
MUST inherit from BaseResponseSchema. Request bodies inherit from
BaseCreateSchema / BaseUpdateSchema and reject unknown fields.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class PlateResponse(BaseResponseSchema):
            id: UUID
            text: str
            plate_type: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Unknown fields are rejected with a 422 rather than silently dropped.
    """
    model_config = ConfigDict(
        extra='forbid',
        str_strip_whitespace=True,
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates.
    """
    model_config = ConfigDict(
        extra='forbid',
        str_strip_whitespace=True,
    )
