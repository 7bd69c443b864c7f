"""
Asset Inventory Models

Pydantic models for the records produced by discovery and merged by
aggregation.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssetCategory(str, Enum):
    """Where an asset's locator was found on its node."""
    IMAGE = "image"
    BACKGROUND = "background"
    RASTER = "raster"


class AssetRecord(BaseModel):
    """
    One discovered image-like resource.

    ``locator`` is the canonical (absolute, resolved, materialized) form and is
    the record's identity. ``width``/``height`` of 0 mean unknown at discovery
    time. ``discovery_index`` stays ``None`` until aggregation assigns it.
    """

    model_config = ConfigDict(validate_assignment=True, use_enum_values=False)

    locator: str = Field(..., min_length=1, frozen=True)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    category: AssetCategory = Field(..., frozen=True)
    discovery_index: Optional[int] = Field(default=None, ge=0)

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width and self.height)

    def refine_dimensions(self, width: int, height: int) -> None:
        """Fill in dimensions measured after discovery; known values are kept."""
        if not self.width:
            self.width = max(0, int(width))
        if not self.height:
            self.height = max(0, int(height))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
