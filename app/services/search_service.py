"""
Search Service
Translates a SearchFilters object into a listing query: radius search around
a geocoded address, range and membership filters, sort and pagination.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import GeocodingError, UpstreamFailure, ValidationFailed
from app.models.listing import Listing
from app.schemas.search import SearchFilters
from app.services.listing_service import serialize_listing
from app.utils.geo import bounding_box, within_radius

logger = logging.getLogger(__name__)

POSTED_WITHIN = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}

LOW_FLOOR_MAX = 5
MID_FLOOR_MAX = 12

Predicate = Callable[[Listing], bool]


@dataclass
class SearchQuery:
    """SQL criteria plus the per-row checks the store cannot express portably."""
    criteria: List[Any] = field(default_factory=list)
    predicates: List[Predicate] = field(default_factory=list)
    order_by: List[Any] = field(default_factory=list)

    def matches(self, listing: Listing) -> bool:
        return all(check(listing) for check in self.predicates)


def sort_clauses(sort_by: Optional[str]) -> List[Any]:
    if sort_by == "price_asc":
        return [Listing.price.asc()]
    if sort_by == "price_desc":
        return [Listing.price.desc()]
    if sort_by == "oldest":
        return [Listing.created_at.asc()]
    if sort_by == "views":
        return [Listing.views_total.desc(), Listing.created_at.desc()]
    if sort_by == "featured":
        return [Listing.is_featured.desc(), Listing.created_at.desc()]
    return [Listing.created_at.desc()]


def _floor_criteria(preference: Optional[str]) -> List[Any]:
    if preference == "Low":
        return [Listing.floor_number <= LOW_FLOOR_MAX]
    if preference == "Mid":
        return [Listing.floor_number > LOW_FLOOR_MAX, Listing.floor_number <= MID_FLOOR_MAX]
    if preference == "High":
        return [Listing.floor_number > MID_FLOOR_MAX]
    return []


def _has_any(column: str, wanted: Sequence[str]) -> Predicate:
    wanted = set(wanted)
    return lambda listing: bool(wanted & set(getattr(listing, column) or []))


def _has_all(column: str, wanted: Sequence[str]) -> Predicate:
    wanted = set(wanted)
    return lambda listing: wanted <= set(getattr(listing, column) or [])


def _has_none(column: str, unwanted: Sequence[str]) -> Predicate:
    unwanted = set(unwanted)
    return lambda listing: not (unwanted & set(getattr(listing, column) or []))


def build_search_query(
    filters: SearchFilters,
    center: Sequence[float],
    now: Optional[datetime] = None,
) -> SearchQuery:
    """
    Build the query for a geocoded search centre ([lon, lat]).

    Only published listings within `filters.radius` km of the centre match.
    Every other filter is ANDed only when present, so adding a filter can
    only narrow the result set.
    """
    now = now or datetime.utcnow()
    query = SearchQuery(order_by=sort_clauses(filters.sort_by))
    c = query.criteria

    # Location
    lon, lat = center
    min_lon, min_lat, max_lon, max_lat = bounding_box(lon, lat, filters.radius)
    c.append(Listing.published.is_(True))
    c.append(Listing.latitude.between(min_lat, max_lat))
    c.append(Listing.longitude.between(min_lon, max_lon))
    radius = filters.radius
    query.predicates.append(lambda listing: within_radius(center, listing.coordinates, radius))

    # Basic
    if filters.property_type:
        c.append(Listing.property_type == filters.property_type)
    if filters.action:
        c.append(Listing.action == filters.action)

    # Price
    if filters.min_price is not None:
        c.append(Listing.price >= filters.min_price)
    if filters.max_price is not None:
        c.append(Listing.price <= filters.max_price)

    # Area
    area = filters.area_range
    area_column = Listing.carpet_area if area.area_type == "carpet" else Listing.super_built_up_area
    if area.min_area is not None:
        c.append(area_column >= area.min_area)
    if area.max_area is not None:
        c.append(area_column <= area.max_area)

    # Property details
    details = filters.property_details
    for name in ("bedrooms", "bathrooms", "total_floors", "floor_number", "carpark"):
        value = getattr(details, name)
        if value is not None:
            c.append(getattr(Listing, name) == value)
    if details.facing:
        c.append(Listing.facing == details.facing)
    c.extend(_floor_criteria(details.floor_preference))

    # Status
    if filters.furnishing_status:
        c.append(Listing.furnishing_status == filters.furnishing_status)
    if filters.possession_status:
        c.append(Listing.possession_status == filters.possession_status)
    if filters.construction_age:
        c.append(Listing.construction_age == filters.construction_age)

    # Amenities and features
    if filters.amenities:
        query.predicates.append(_has_any("amenities", filters.amenities))
    if filters.required_amenities:
        query.predicates.append(_has_all("amenities", filters.required_amenities))
    if filters.view_type:
        view = filters.view_type
        query.predicates.append(lambda listing: (listing.features or {}).get("view") == view)
    if filters.special_features:
        keys = set(filters.special_features)
        query.predicates.append(lambda listing: bool(keys & set((listing.features or {}).keys())))

    # Legal
    if filters.legal.ownership:
        c.append(Listing.ownership == filters.legal.ownership)
    if filters.legal.rera_number:
        c.append(Listing.rera_number == filters.legal.rera_number)

    # Posted within
    window = POSTED_WITHIN.get(filters.posted_within or "")
    if window is not None:
        c.append(Listing.created_at >= now - window)

    # Landmarks
    prefs = filters.location_preferences
    if prefs.preferred:
        query.predicates.append(_has_any("landmarks", prefs.preferred))
    if prefs.excluded:
        query.predicates.append(_has_none("landmarks", prefs.excluded))

    # Verification and marketing
    if filters.verified_only:
        c.append(Listing.is_verified.is_(True))
    if filters.featured_only:
        c.append(Listing.is_featured.is_(True))
    if filters.maintenance_frequency:
        c.append(Listing.maintenance_frequency == filters.maintenance_frequency)

    return query


class SearchService:
    def __init__(self, db: Session, geocoder):
        self.db = db
        self.geocoder = geocoder

    def run(self, query: SearchQuery, page: int, page_size: int) -> Dict[str, Any]:
        rows = self.db.query(Listing).filter(*query.criteria).order_by(*query.order_by).all()
        matches = [row for row in rows if query.matches(row)]
        start = (page - 1) * page_size
        return {"total": len(matches), "rows": matches[start:start + page_size]}

    def search(self, filters: SearchFilters) -> Dict[str, Any]:
        if not filters.address or not filters.address.strip():
            raise ValidationFailed("Address is required")

        try:
            geo = self.geocoder.geocode(filters.address)
        except GeocodingError as e:
            logger.error(f"[search] Geocoding failed for '{filters.address}': {e}")
            raise UpstreamFailure("Search failed. Please try again.") from e

        query = build_search_query(filters, geo.coordinates)
        page_size = settings.SEARCH_PAGE_SIZE
        result = self.run(query, filters.page, page_size)
        total = result["total"]

        logger.info(
            f"[search] '{filters.address}' radius={filters.radius}km "
            f"sort={filters.sort_by} -> {total} match(es)"
        )
        return {
            "success": True,
            "ads": [serialize_listing(row) for row in result["rows"]],
            "total": total,
            "page": filters.page,
            "pageSize": page_size,
            "totalPages": math.ceil(total / page_size),
            "filters": {
                "appliedFilters": filters.applied_filters(),
                "sortBy": filters.sort_by,
                "sortOrder": filters.sort_order,
                "radius": filters.radius,
            },
        }
