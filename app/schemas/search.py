"""
Search filter object for POST /search-ads.

Every field except `address` is optional; an absent field imposes no
constraint. Enum-like filters are plain strings so that unknown values
(e.g. floorPreference="Penthouse") are ignored rather than rejected.
"""
from typing import List, Optional

from pydantic import Field

from app.core.config import settings
from app.schemas.listing import CamelModel


class AreaRange(CamelModel):
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    area_type: str = "super"  # 'carpet' or 'super'


class SearchPropertyDetails(CamelModel):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    total_floors: Optional[int] = None
    floor_number: Optional[int] = None
    carpark: Optional[int] = None
    facing: Optional[str] = None
    floor_preference: Optional[str] = None  # 'Low' (<=5), 'Mid' (6-12), 'High' (>12)


class SearchLegal(CamelModel):
    ownership: Optional[str] = None
    rera_number: Optional[str] = None


class LocationPreferences(CamelModel):
    preferred: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)


class SearchFilters(CamelModel):
    address: Optional[str] = None
    property_type: Optional[str] = None
    action: Optional[str] = None
    page: int = Field(1, ge=1)
    sort_by: str = "newest"
    sort_order: str = "desc"
    radius: float = Field(default_factory=lambda: settings.DEFAULT_SEARCH_RADIUS_KM, gt=0)

    min_price: Optional[float] = None
    max_price: Optional[float] = None

    property_details: SearchPropertyDetails = Field(default_factory=SearchPropertyDetails)
    area_range: AreaRange = Field(default_factory=AreaRange)

    furnishing_status: Optional[str] = None
    possession_status: Optional[str] = None
    construction_age: Optional[str] = None
    amenities: List[str] = Field(default_factory=list)
    required_amenities: List[str] = Field(default_factory=list)
    view_type: Optional[str] = None

    legal: SearchLegal = Field(default_factory=SearchLegal)
    posted_within: Optional[str] = None  # '24h', '7d', '30d', '90d'
    location_preferences: LocationPreferences = Field(default_factory=LocationPreferences)

    verified_only: bool = False
    featured_only: bool = False
    maintenance_frequency: Optional[str] = None
    special_features: List[str] = Field(default_factory=list)

    def applied_filters(self) -> dict:
        """Echo of the filter object for client-side display."""
        details = self.property_details
        return {
            "address": self.address,
            "propertyType": self.property_type,
            "action": self.action,
            "price": {"minPrice": self.min_price, "maxPrice": self.max_price},
            "area": {
                "minArea": self.area_range.min_area,
                "maxArea": self.area_range.max_area,
                "areaType": self.area_range.area_type,
            },
            "propertyDetails": details.model_dump(by_alias=True),
            "furnishingStatus": self.furnishing_status,
            "possessionStatus": self.possession_status,
            "constructionAge": self.construction_age,
            "amenities": list(self.amenities),
            "requiredAmenities": list(self.required_amenities),
            "viewType": self.view_type,
            "legal": self.legal.model_dump(by_alias=True),
            "locationPreferences": self.location_preferences.model_dump(by_alias=True),
            "specialFeatures": list(self.special_features),
            "verifiedOnly": self.verified_only,
            "featuredOnly": self.featured_only,
            "maintenanceFrequency": self.maintenance_frequency,
            "postedWithin": self.posted_within,
        }
