"""
Pydantic schemas for property listings.

Request bodies use camelCase on the wire (propertyType, pricing.price, ...).
Required listing fields are Optional here on purpose: ListingService checks
them in a fixed order so the client gets one field-specific message.
"""
from __future__ import annotations

import uuid
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.listing import (
    Amenity, ConstructionAge, Facing, FurnishingStatus, ListingAction,
    ListingStatus, MaintenanceFrequency, NearbyPlaceType, Ownership,
    PossessionStatus, PropertyType,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Sub-objects ────────────────────────────────────────────────────────────────

class PricingIn(CamelModel):
    price: Optional[float] = Field(None, ge=0)
    maintenance_charges: Optional[float] = Field(None, ge=0)
    maintenance_frequency: Optional[MaintenanceFrequency] = None


class PropertyDetailsIn(CamelModel):
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    total_floors: Optional[int] = Field(None, ge=0)
    floor_number: Optional[int] = Field(None, ge=0)
    carpark: Optional[int] = Field(None, ge=0)
    super_built_up_area: Optional[float] = Field(None, ge=0)
    carpet_area: Optional[float] = Field(None, ge=0)
    land_size: Optional[float] = Field(None, ge=0)
    land_size_unit: Optional[str] = Field(None, max_length=30)
    facing: Optional[Facing] = None


class LegalIn(CamelModel):
    ownership: Optional[Ownership] = None
    approvals: Optional[List[str]] = None
    rera_number: Optional[str] = Field(None, max_length=100)


class NearbyPlaceIn(CamelModel):
    type: NearbyPlaceType
    name: str
    distance: Optional[float] = Field(None, ge=0)  # km


class LocalityIn(CamelModel):
    landmarks: Optional[List[str]] = None
    nearby_places: Optional[List[NearbyPlaceIn]] = None


class PhotoIn(CamelModel):
    url: str
    key: str
    uploaded_by: str


class VirtualTourIn(CamelModel):
    url: str
    type: Optional[str] = None  # '3D Tour', '360 View', 'Video Tour'


# ── Listing bodies ─────────────────────────────────────────────────────────────

class ListingPayload(CamelModel):
    """Body for create-ad (JSON form field) and update-ad."""
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    property_type: Optional[PropertyType] = None
    action: Optional[ListingAction] = None
    status: Optional[ListingStatus] = None

    pricing: Optional[PricingIn] = None
    property_details: Optional[PropertyDetailsIn] = None
    legal: Optional[LegalIn] = None
    locality: Optional[LocalityIn] = None

    amenities: Optional[List[Amenity]] = None
    features: Optional[Dict[str, str]] = None
    furnishing_status: Optional[FurnishingStatus] = None
    possession_status: Optional[PossessionStatus] = None
    construction_age: Optional[ConstructionAge] = None

    photos: Optional[List[PhotoIn]] = None
    virtual_tour: Optional[VirtualTourIn] = None
    inspection_time: Optional[str] = Field(None, max_length=255)
    published: Optional[bool] = None

    @property
    def price(self) -> Optional[float]:
        return self.pricing.price if self.pricing else None


class StatusUpdate(CamelModel):
    status: ListingStatus


class ContactAgentRequest(CamelModel):
    ad_id: uuid.UUID
    message: str = Field("", max_length=5000)


class RemoveImageRequest(CamelModel):
    key: str
    uploaded_by: str
