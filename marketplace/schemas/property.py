from __future__ import annotations
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

PropertyType = Literal["House", "Apartment", "Condo", "Townhouse", "Land", "Commercial"]
ListingStatus = Literal["For Sale", "For Rent", "Sold", "Rented"]


class PropertyCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    price: float = Field(ge=0)
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: float = Field(default=0, ge=0)
    area: float = Field(default=0, ge=0)
    property_type: PropertyType = "House"
    listing_status: ListingStatus = "For Sale"
    year_built: int | None = None
    parking_spaces: int = Field(default=0, ge=0)
    features: list[str] = []
    images: list[str] = []
    is_featured: bool = False


class PropertyRead(BaseModel):
    id: str
    title: str
    description: str
    price: float
    address: str
    city: str
    state: str
    zip_code: str
    bedrooms: int
    bathrooms: float
    area: float
    property_type: str
    listing_status: str
    year_built: int | None = None
    parking_spaces: int
    features: list[str]
    images: list[str]
    is_featured: bool
    agent_id: str
    moderation_status: str
    moderation_notes: str | None = None
    report_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PropertyReportCreate(BaseModel):
    reason: str = ""


class PropertyUpdate(BaseModel):
    """Owner/admin edit. Moderation columns are not editable here."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    price: float | None = Field(default=None, ge=0)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: float | None = Field(default=None, ge=0)
    area: float | None = Field(default=None, ge=0)
    property_type: PropertyType | None = None
    listing_status: ListingStatus | None = None
    year_built: int | None = None
    parking_spaces: int | None = Field(default=None, ge=0)
    features: list[str] | None = None
    images: list[str] | None = None
    is_featured: bool | None = None

    model_config = {"extra": "forbid"}
