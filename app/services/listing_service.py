"""
Listing Service
Handles listing creation, slug generation, geocoding, image storage,
ownership checks, browse pagination and view analytics.
"""
from __future__ import annotations

import logging
import math
import random
import re
import string
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.core.config import settings
from app.core.exceptions import (
    GeocodingError, ImageStorageError, NotFound, Unauthorized,
    UpstreamFailure, ValidationFailed,
)
from app.models.listing import Listing, ListingStatus, PropertyType
from app.models.user import User, UserRole
from app.schemas.listing import ListingPayload
from app.services.image_service import RawImage
from app.utils.geo import bounding_box, haversine_km

logger = logging.getLogger(__name__)


# ── Helpers ────────────────────────────────────────────────────────────────────

# Checked in this order; the first missing one is reported.
_REQUIRED_FIELDS = (
    ("title", "Title is required"),
    ("description", "Description is required"),
    ("address", "Address is required"),
    ("property_type", "Property Type is required"),
    ("action", "Property Action (Sell/Rent) is required"),
    ("price", "Price is required"),
)

_DETAIL_FIELDS = (
    "bedrooms", "bathrooms", "total_floors", "floor_number", "carpark",
    "super_built_up_area", "carpet_area", "land_size", "land_size_unit", "facing",
)


def _slugify(text: str) -> str:
    """Convert text to URL-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    text = re.sub(r"^-+|-+$", "", text)
    return text[:200]


def _random_suffix(length: int = 6) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def _format_price(price: Any) -> str:
    value = float(price)
    return str(int(value)) if value.is_integer() else str(value).replace(".", "-")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def serialize_listing(listing: Listing, distance_km: Optional[float] = None) -> Dict[str, Any]:
    """Document view of a listing with the owner's public profile attached."""
    data = {
        "id": str(listing.id),
        "slug": listing.slug,
        "title": listing.title,
        "description": listing.description,
        "photos": listing.photos or [],
        "virtualTour": listing.virtual_tour,
        "address": listing.address,
        "location": {"type": "Point", "coordinates": listing.coordinates},
        "locality": {
            "landmarks": listing.landmarks or [],
            "nearbyPlaces": listing.nearby_places or [],
        },
        "propertyType": listing.property_type,
        "action": listing.action,
        "status": listing.status,
        "propertyDetails": {
            "bedrooms": listing.bedrooms,
            "bathrooms": listing.bathrooms,
            "totalFloors": listing.total_floors,
            "floorNumber": listing.floor_number,
            "carpark": listing.carpark,
            "superBuiltUpArea": listing.super_built_up_area,
            "carpetArea": listing.carpet_area,
            "landSize": listing.land_size,
            "landSizeUnit": listing.land_size_unit,
            "facing": listing.facing,
        },
        "amenities": listing.amenities or [],
        "features": listing.features or {},
        "furnishingStatus": listing.furnishing_status,
        "possessionStatus": listing.possession_status,
        "constructionAge": listing.construction_age,
        "pricing": {
            "price": listing.price,
            "maintenanceCharges": listing.maintenance_charges,
            "maintenanceFrequency": listing.maintenance_frequency,
            "priceHistory": listing.price_history or [],
        },
        "legal": {
            "ownership": listing.ownership,
            "approvals": listing.approvals or [],
            "reraNumber": listing.rera_number,
        },
        "postedBy": listing.owner.public_profile() if listing.owner else str(listing.posted_by),
        "published": listing.published,
        "inspectionTime": listing.inspection_time,
        "views": {
            "total": listing.views_total or 0,
            "unique": listing.views_unique or [],
        },
        "analytics": {
            "lastViewed": _iso(listing.last_viewed_at),
            "contactRequests": listing.contact_requests or [],
            "shortlists": listing.shortlists or [],
        },
        "verification": {
            "isVerified": listing.is_verified,
            "verifiedBy": str(listing.verified_by) if listing.verified_by else None,
            "verificationDate": _iso(listing.verified_at),
        },
        "featured": {
            "isFeatured": listing.is_featured,
            "startDate": _iso(listing.featured_from),
            "endDate": _iso(listing.featured_until),
        },
        "isNew": listing.is_new,
        "createdAt": _iso(listing.created_at),
        "updatedAt": _iso(listing.updated_at),
    }
    if distance_km is not None:
        data["distance"] = round(distance_km, 3)
    return data


def paginate_listings(query: Query, page: int, page_size: int) -> Dict[str, Any]:
    """Newest-first page of a listing query plus total page count."""
    page = max(1, page or 1)
    total = query.count()
    rows = (
        query.order_by(Listing.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "ads": [serialize_listing(row) for row in rows],
        "page": page,
        "total": total,
        "totalPages": math.ceil(total / page_size),
    }


def payload_columns(payload: ListingPayload) -> Dict[str, Any]:
    """
    Flatten a listing body into column values.

    Fields that are absent or null are left out, so an update never clears a
    stored value by omission.
    """
    data = payload.model_dump(mode="json", exclude_none=True)
    columns: Dict[str, Any] = {}

    for field in (
        "title", "description", "address", "property_type", "action", "status",
        "amenities", "features", "furnishing_status", "possession_status",
        "construction_age", "virtual_tour", "inspection_time", "published",
    ):
        if field in data:
            columns[field] = data[field]

    pricing = data.get("pricing", {})
    for field in ("price", "maintenance_charges", "maintenance_frequency"):
        if field in pricing:
            columns[field] = pricing[field]

    details = data.get("property_details", {})
    for field in _DETAIL_FIELDS:
        if field in details:
            columns[field] = details[field]

    legal = data.get("legal", {})
    for field in ("ownership", "approvals", "rera_number"):
        if field in legal:
            columns[field] = legal[field]

    locality = data.get("locality", {})
    for field in ("landmarks", "nearby_places"):
        if field in locality:
            columns[field] = locality[field]

    if "photos" in data:
        columns["photos"] = [
            {"url": p["url"], "key": p["key"], "uploadedBy": p["uploaded_by"]}
            for p in data["photos"]
        ]
    return columns


# ── ListingService ─────────────────────────────────────────────────────────────

class ListingService:
    def __init__(self, db: Session, geocoder=None, images=None):
        self.db = db
        self.geocoder = geocoder
        self.images = images

    # ── Slug management ───────────────────────────────────────────────────────

    def generate_slug(self, property_type: str, action: str, address: str, price: Any) -> str:
        """
        Slug from type, action, address and price plus a random suffix,
        e.g. 'residential-house-sell-12-main-st-450000-x8k2pq'.
        A fresh suffix is drawn on collision.
        """
        base = _slugify(f"{property_type}-{action}-{address}-{_format_price(price)}")
        for _ in range(10):
            candidate = f"{base}-{_random_suffix()}"
            exists = self.db.query(Listing.id).filter(Listing.slug == candidate).first()
            if not exists:
                return candidate
        # Fallback: fully random slug
        return f"{base}-{uuid.uuid4().hex[:12]}"

    # ── Validation & lookups ──────────────────────────────────────────────────

    @staticmethod
    def validate_required(payload: ListingPayload, image_count: int) -> None:
        for field, message in _REQUIRED_FIELDS:
            value = payload.price if field == "price" else getattr(payload, field)
            if _is_blank(value) or (field == "price" and not value):
                raise ValidationFailed(message)
        if image_count < 1:
            raise ValidationFailed("At least one image is required")

    @staticmethod
    def validate_property_type_rules(payload: ListingPayload) -> None:
        if payload.property_type == PropertyType.LAND_PLOT:
            details = payload.property_details
            if not details or not details.land_size:
                raise ValidationFailed("Land size is required for Land plots")
            if not details.land_size_unit:
                raise ValidationFailed("Land size type is required for Land plots")

    def get_by_slug(self, slug: str) -> Listing:
        listing = self.db.query(Listing).filter(Listing.slug == slug).first()
        if not listing:
            raise NotFound("Ad not found")
        return listing

    def get_owned(self, slug: str, user: User) -> Listing:
        """Fetch by slug and require the caller to be the owner."""
        listing = self.get_by_slug(slug)
        if str(listing.posted_by) != str(user.id):
            logger.warning(f"[listing] User {user.id} denied access to {slug}")
            raise Unauthorized("Unauthorized")
        return listing

    def _geocode(self, address: str, failure_message: str):
        try:
            return self.geocoder.geocode(address)
        except GeocodingError as e:
            logger.error(f"[listing] Geocoding failed for '{address}': {e}")
            raise UpstreamFailure(failure_message) from e

    def _store_images(self, images: Sequence[RawImage], owner_id, failure_message: str) -> List[Dict[str, str]]:
        try:
            return self.images.store(images, owner_id)
        except ImageStorageError as e:
            logger.error(f"[listing] Image upload failed: {e}")
            raise UpstreamFailure(failure_message) from e

    # ── Create ────────────────────────────────────────────────────────────────

    def create_listing(self, user: User, payload: ListingPayload, images: Sequence[RawImage]) -> Dict[str, Any]:
        self.validate_required(payload, len(images))
        self.validate_property_type_rules(payload)

        failure = "Failed to create property listing. Please try again."
        photos = self._store_images(images, user.id, failure)
        geo = self._geocode(payload.address, failure)

        columns = payload_columns(payload)
        columns.pop("photos", None)
        columns.setdefault("published", True)
        columns.setdefault("status", ListingStatus.IN_MARKET.value)

        listing = Listing(
            **columns,
            slug=self.generate_slug(columns["property_type"], columns["action"], columns["address"], columns["price"]),
            photos=photos,
            longitude=geo.longitude,
            latitude=geo.latitude,
            geocode_result=geo.raw,
            price_history=[{"price": columns["price"], "date": datetime.utcnow().isoformat()}],
            posted_by=user.id,
            views_total=0,
            views_unique=[],
            contact_requests=[],
            shortlists=[],
        )
        self.db.add(listing)
        user.add_role(UserRole.SELLER.value)
        self.db.commit()
        self.db.refresh(listing)
        self.db.refresh(user)

        logger.info(f"[listing] Created listing {listing.id} slug={listing.slug} owner={user.email}")
        return {
            "success": True,
            "message": "Property listing created successfully",
            "ad": serialize_listing(listing),
            "user": user.to_dict(),
        }

    # ── Read ──────────────────────────────────────────────────────────────────

    def find_related(self, listing: Listing) -> List[Dict[str, Any]]:
        """Nearest listings of the same action and type within the related radius."""
        radius = settings.RELATED_RADIUS_KM
        min_lon, min_lat, max_lon, max_lat = bounding_box(listing.longitude, listing.latitude, radius)
        candidates = (
            self.db.query(Listing)
            .filter(
                Listing.id != listing.id,
                Listing.action == listing.action,
                Listing.property_type == listing.property_type,
                Listing.latitude.between(min_lat, max_lat),
                Listing.longitude.between(min_lon, max_lon),
            )
            .all()
        )
        ranked = []
        for other in candidates:
            distance = haversine_km(listing.longitude, listing.latitude, other.longitude, other.latitude)
            if distance <= radius:
                ranked.append((distance, other))
        ranked.sort(key=lambda pair: pair[0])
        return [serialize_listing(other, distance) for distance, other in ranked[: settings.RELATED_LIMIT]]

    def increment_view_count(self, listing: Listing, viewer_id: Optional[uuid.UUID] = None) -> None:
        """Record a view. Failures are logged and never surface to the reader."""
        values = {
            Listing.views_total: Listing.views_total + 1,
            Listing.last_viewed_at: datetime.utcnow(),
            # a view is not an edit
            Listing.updated_at: Listing.updated_at,
        }
        unique = list(listing.views_unique or [])
        if viewer_id is not None and str(viewer_id) not in unique:
            values[Listing.views_unique] = unique + [str(viewer_id)]
        try:
            self.db.query(Listing).filter(Listing.id == listing.id).update(values, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"[listing] Failed to record view for {listing.id}: {e}")

    def read_listing(self, slug: str, viewer: Optional[User] = None) -> Dict[str, Any]:
        listing = self.get_by_slug(slug)
        result = {"ad": serialize_listing(listing), "related": self.find_related(listing)}
        self.increment_view_count(listing, viewer.id if viewer else None)
        return result

    # ── Browse ────────────────────────────────────────────────────────────────

    def list_published(self, page: int, action: Optional[str] = None) -> Dict[str, Any]:
        query = self.db.query(Listing).filter(Listing.published.is_(True))
        if action:
            query = query.filter(Listing.action == action)
        return paginate_listings(query, page, settings.BROWSE_PAGE_SIZE)

    def list_user_listings(self, user: User, page: int) -> Dict[str, Any]:
        query = self.db.query(Listing).filter(Listing.posted_by == user.id)
        return paginate_listings(query, page, settings.BROWSE_PAGE_SIZE)

    # ── Update ────────────────────────────────────────────────────────────────

    def update_listing(self, user: User, slug: str, payload: ListingPayload) -> Dict[str, Any]:
        self.validate_required(payload, len(payload.photos or []))
        listing = self.get_owned(slug, user)
        self.validate_property_type_rules(payload)

        failure = "Failed to update property listing. Please try again."
        columns = payload_columns(payload)

        if columns["address"] != listing.address:
            geo = self._geocode(columns["address"], failure)
            listing.longitude = geo.longitude
            listing.latitude = geo.latitude
            listing.geocode_result = geo.raw

        new_price = columns.get("price")
        if new_price is not None and new_price != listing.price:
            listing.price_history = list(listing.price_history or []) + [
                {"price": new_price, "date": datetime.utcnow().isoformat()}
            ]

        for field, value in columns.items():
            setattr(listing, field, value)
        listing.slug = self.generate_slug(listing.property_type, listing.action, listing.address, listing.price)

        self.db.commit()
        self.db.refresh(listing)
        logger.info(f"[listing] Updated listing {listing.id} slug {slug} -> {listing.slug}")
        return {
            "success": True,
            "message": "Property listing updated successfully",
            "ad": serialize_listing(listing),
        }

    def update_status(self, user: User, slug: str, status: ListingStatus) -> Dict[str, Any]:
        listing = self.get_owned(slug, user)
        listing.status = ListingStatus(status).value
        self.db.commit()
        self.db.refresh(listing)
        logger.info(f"[listing] Status of {slug} set to '{listing.status}'")
        return {"ok": True, "ad": serialize_listing(listing)}

    # ── Delete ────────────────────────────────────────────────────────────────

    def delete_listing(self, user: User, slug: str) -> Dict[str, Any]:
        listing = self.get_owned(slug, user)
        listing_id = str(listing.id)
        keys = [photo.get("key") for photo in (listing.photos or []) if photo.get("key")]

        self.db.delete(listing)
        self.db.commit()
        logger.info(f"[listing] Deleted listing {listing_id} ({slug})")

        # Stored images go too; a failed removal leaves an orphan object only.
        for key in keys:
            try:
                self.images.delete(key)
            except ImageStorageError as e:
                logger.warning(f"[listing] Orphaned image {key} after deleting {listing_id}: {e}")

        return {"ok": True, "deletedAd": {"id": listing_id, "slug": slug}}

    # ── Images ────────────────────────────────────────────────────────────────

    def upload_images(self, user: User, images: Sequence[RawImage]) -> Dict[str, Any]:
        if not images:
            raise ValidationFailed("Image is required")
        results = self._store_images(images, user.id, "Upload image failed. Please try again.")
        return {"results": results}

    def remove_image(self, user: User, key: str, uploaded_by: str) -> Dict[str, Any]:
        if str(user.id) != str(uploaded_by):
            raise Unauthorized("Unauthorized")
        try:
            self.images.delete(key)
        except ImageStorageError as e:
            raise UpstreamFailure("Remove image failed. Please try again.") from e
        return {"success": True}
