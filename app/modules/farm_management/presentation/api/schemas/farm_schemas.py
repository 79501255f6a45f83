# 📄 File: app/modules/farm_management/presentation/api/schemas/farm_schemas.py
# 🧭 Purpose (Layman Explanation):
# Describes what a farm looks like when a farmer adds or edits it: its name, where it is,
# how big it is and which crops grow there.
#
# 🧪 Purpose (Technical Summary):
# Pydantic request schemas for farm creation and update. Unknown fields are ignored so
# clients cannot set owner or timestamps through the body.
#
# 🔗 Dependencies:
# - pydantic
#
# 🔄 Connected Modules / Calls From:
# - app.modules.farm_management.presentation.api.v1.farms

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_FARM_CROPS = 20
MAX_CROP_NAME_LENGTH = 50


def _validate_crop_names(crops: Optional[List[str]]) -> Optional[List[str]]:
    if crops is None:
        return crops
    for crop in crops:
        if not crop or len(crop) > MAX_CROP_NAME_LENGTH:
            raise ValueError(f"Each crop name must be 1-{MAX_CROP_NAME_LENGTH} characters")
    return crops


class FarmCreate(BaseModel):
    """Schema for registering a farm."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100, description="Farm name")
    location: str = Field(..., min_length=5, max_length=200, description="Village, district and state")
    area: Optional[float] = Field(default=None, ge=0, le=100000, description="Farm size in acres")
    crops: List[str] = Field(default_factory=list, max_length=MAX_FARM_CROPS, description="Crops grown")

    @field_validator("crops")
    @classmethod
    def validate_crops(cls, v: List[str]) -> List[str]:
        return _validate_crop_names(v)


class FarmUpdate(BaseModel):
    """Partial farm update; only the fields sent are changed."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    location: Optional[str] = Field(default=None, min_length=5, max_length=200)
    area: Optional[float] = Field(default=None, ge=0, le=100000)
    crops: Optional[List[str]] = Field(default=None, max_length=MAX_FARM_CROPS)

    @field_validator("crops")
    @classmethod
    def validate_crops(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _validate_crop_names(v)
