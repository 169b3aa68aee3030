"""Base model classes for the Voice Interviewer."""

from datetime import datetime

from pydantic import BaseModel as PydanticBaseModel


class BaseModel(PydanticBaseModel):
    """Base model with common functionality."""

    class Config:
        """Pydantic configuration."""
        use_enum_values = False
        json_encoders = {
            datetime: lambda v: v.isoformat(),
        }
        validate_assignment = True


class FrozenModel(BaseModel):
    """Base model for records that never change after creation."""

    class Config:
        frozen = True
