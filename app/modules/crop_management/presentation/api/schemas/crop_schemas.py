# 📄 File: app/modules/crop_management/presentation/api/schemas/crop_schemas.py
# 🧭 Purpose (Layman Explanation):
# Describes a crop planting: what was planted, on which farm, when, and over how much land.
#
# 🧪 Purpose (Technical Summary):
# Pydantic request schemas for crop creation and update, including cross-field date checks
# and the 24-hex farm reference.
#
# 🔗 Dependencies:
# - pydantic
# - app.shared.core.validation (object id format)
#
# 🔄 Connected Modules / Calls From:
# - app.modules.crop_management.presentation.api.v1.crops

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.shared.core.validation import is_object_id


class AreaUnit(str, Enum):
    ACRES = "acres"
    HECTARES = "hectares"
    SQUARE_METERS = "square_meters"


class CropStatus(str, Enum):
    PLANNED = "planned"
    PLANTED = "planted"
    GROWING = "growing"
    HARVESTED = "harvested"
    FAILED = "failed"


class GrowthStage(str, Enum):
    SEEDLING = "seedling"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    FRUITING = "fruiting"
    MATURE = "mature"


class CropArea(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: float = Field(..., ge=0, le=10000)
    unit: AreaUnit = AreaUnit.ACRES


def _check_harvest_after_planting(planting: Optional[date], harvest: Optional[date]) -> None:
    if planting and harvest and harvest < planting:
        raise ValueError("Expected harvest date must be after planting date")


class CropCreate(BaseModel):
    """Schema for recording a new planting."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, use_enum_values=True)

    name: str = Field(..., min_length=2, max_length=100, description="Crop name, e.g. Wheat")
    variety: Optional[str] = Field(default=None, max_length=100)
    farmId: str = Field(..., description="Farm the crop is planted on")
    plantingDate: date
    expectedHarvestDate: Optional[date] = None
    area: Optional[CropArea] = None

    @field_validator("farmId")
    @classmethod
    def validate_farm_id(cls, v: str) -> str:
        if not is_object_id(v):
            raise ValueError("Invalid farmId format")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "CropCreate":
        _check_harvest_after_planting(self.plantingDate, self.expectedHarvestDate)
        return self


class CropUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, use_enum_values=True)

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    variety: Optional[str] = Field(default=None, max_length=100)
    plantingDate: Optional[date] = None
    expectedHarvestDate: Optional[date] = None
    area: Optional[CropArea] = None
    status: Optional[CropStatus] = None
    growthStage: Optional[GrowthStage] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "CropUpdate":
        _check_harvest_after_planting(self.plantingDate, self.expectedHarvestDate)
        return self
