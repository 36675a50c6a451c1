"""
Property Listing Model
Covers: Listing plus the closed vocabularies its fields draw from
"""
import uuid
from datetime import datetime, timedelta
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Integer, Float, Text, DateTime, Boolean,
    ForeignKey, JSON, Index, Uuid
)
from sqlalchemy.orm import relationship

from app.db.base import Base


# ── Enums ──────────────────────────────────────────────────────────────────────

class PropertyType(str, PyEnum):
    RESIDENTIAL_APARTMENT = "Residential-Apartment"
    RESIDENTIAL_HOUSE = "Residential-House"
    RESIDENTIAL_VILLA = "Residential-Villa"
    COMMERCIAL_OFFICE = "Commercial-Office"
    COMMERCIAL_SHOP = "Commercial-Shop"
    COMMERCIAL_WAREHOUSE = "Commercial-Warehouse"
    INDUSTRIAL = "Industrial"
    LAND_PLOT = "Land-Plot"
    AGRICULTURAL = "Agricultural"


class ListingAction(str, PyEnum):
    SELL = "Sell"
    RENT = "Rent"


class ListingStatus(str, PyEnum):
    IN_MARKET = "In market"
    DEPOSIT_TAKEN = "Deposit taken"
    SOLD = "Sold"
    UNDER_OFFER = "Under offer"
    CONTACT_AGENT = "Contact agent"
    RENTED = "Rented"
    OFF_MARKET = "Off market"


class Facing(str, PyEnum):
    NORTH = "North"
    SOUTH = "South"
    EAST = "East"
    WEST = "West"
    NORTH_EAST = "North-East"
    NORTH_WEST = "North-West"
    SOUTH_EAST = "South-East"
    SOUTH_WEST = "South-West"


class Amenity(str, PyEnum):
    PARKING = "Parking"
    GYM = "Gym"
    SWIMMING_POOL = "Swimming Pool"
    SECURITY = "Security"
    POWER_BACKUP = "Power Backup"
    LIFT = "Lift"
    CLUB_HOUSE = "Club House"
    GARDEN = "Garden"
    INTERCOM = "Intercom"
    CHILDREN_PLAY_AREA = "Children Play Area"
    FIRE_SAFETY = "Fire Safety"
    VISITOR_PARKING = "Visitor Parking"
    WATER_SUPPLY = "Water Supply 24/7"
    SHOPPING_CENTER = "Shopping Center"
    LOADING_DOCKS = "Loading Docks"


class FurnishingStatus(str, PyEnum):
    UNFURNISHED = "Unfurnished"
    SEMI_FURNISHED = "Semi-Furnished"
    FULLY_FURNISHED = "Fully-Furnished"


class PossessionStatus(str, PyEnum):
    READY_TO_MOVE = "Ready to Move"
    UNDER_CONSTRUCTION = "Under Construction"


class ConstructionAge(str, PyEnum):
    UNDER_CONSTRUCTION = "Under Construction"
    NEW = "0-1 years"
    RECENT = "1-5 years"
    MATURE = "5-10 years"
    OLD = "10+ years"


class MaintenanceFrequency(str, PyEnum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"


class Ownership(str, PyEnum):
    FREEHOLD = "Freehold"
    LEASEHOLD = "Leasehold"
    POWER_OF_ATTORNEY = "Power of Attorney"
    CO_OPERATIVE = "Co-operative Society"


class NearbyPlaceType(str, PyEnum):
    SCHOOL = "School"
    HOSPITAL = "Hospital"
    MALL = "Mall"
    METRO = "Metro"
    BUS_STOP = "Bus Stop"
    PARK = "Park"


NEW_LISTING_WINDOW = timedelta(days=7)


# ── Models ─────────────────────────────────────────────────────────────────────

class Listing(Base):
    __tablename__ = "listings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slug = Column(String(300), unique=True, nullable=False, index=True)
    posted_by = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Basic information
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    photos = Column(JSON, nullable=False, default=list)        # [{url, key, uploadedBy}, ...]
    virtual_tour = Column(JSON, nullable=True)                 # {url, type}

    # Location
    address = Column(String(255), nullable=False, index=True)
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    geocode_result = Column(JSON, nullable=True)               # raw provider response
    landmarks = Column(JSON, nullable=False, default=list)
    nearby_places = Column(JSON, nullable=False, default=list)

    # Type and status
    property_type = Column(String(50), nullable=False, index=True)
    action = Column(String(10), nullable=False, default=ListingAction.SELL.value, index=True)
    status = Column(String(30), nullable=False, default=ListingStatus.IN_MARKET.value)

    # Property specifications
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    total_floors = Column(Integer, nullable=True)
    floor_number = Column(Integer, nullable=True)
    carpark = Column(Integer, nullable=True)
    super_built_up_area = Column(Float, nullable=True)
    carpet_area = Column(Float, nullable=True)
    land_size = Column(Float, nullable=True)
    land_size_unit = Column(String(30), nullable=True)
    facing = Column(String(20), nullable=True)

    amenities = Column(JSON, nullable=False, default=list)
    features = Column(JSON, nullable=False, default=dict)      # {"view": "Sea", ...}

    furnishing_status = Column(String(30), nullable=True)
    possession_status = Column(String(30), nullable=True)
    construction_age = Column(String(30), nullable=True)

    # Pricing
    price = Column(Float, nullable=False, index=True)
    maintenance_charges = Column(Float, nullable=True)
    maintenance_frequency = Column(String(20), nullable=True)
    price_history = Column(JSON, nullable=False, default=list)  # append-only [{price, date}]

    # Legal
    ownership = Column(String(40), nullable=True)
    approvals = Column(JSON, nullable=False, default=list)
    rera_number = Column(String(100), nullable=True)

    # Posting details
    published = Column(Boolean, nullable=False, default=True, index=True)
    inspection_time = Column(String(255), nullable=True)

    # Analytics (increment / append only)
    views_total = Column(Integer, nullable=False, default=0)
    views_unique = Column(JSON, nullable=False, default=list)
    last_viewed_at = Column(DateTime, nullable=True)
    contact_requests = Column(JSON, nullable=False, default=list)
    shortlists = Column(JSON, nullable=False, default=list)

    # Marketing
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_by = Column(Uuid, nullable=True)
    verified_at = Column(DateTime, nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    featured_from = Column(DateTime, nullable=True)
    featured_until = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="listings")
    wishlist_entries = relationship("WishlistEntry", back_populates="listing", cascade="all, delete-orphan")
    enquiries = relationship("ListingEnquiry", back_populates="listing", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_listings_lat_lon", "latitude", "longitude"),
        Index("ix_listings_action_type", "action", "property_type"),
    )

    @property
    def coordinates(self):
        """[longitude, latitude], the GeoJSON point order."""
        return [self.longitude, self.latitude]

    @property
    def is_new(self) -> bool:
        if not self.created_at:
            return False
        return datetime.utcnow() - self.created_at < NEW_LISTING_WINDOW
