"""
User Model
Accounts that post listings, keep a wishlist and send enquiries
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, DateTime, Text, JSON, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
import uuid

from app.db.base import Base, TimestampMixin


class UserRole(str, Enum):
    BUYER = "Buyer"
    SELLER = "Seller"
    ADMIN = "Admin"


# Fields that may be attached to a listing as "postedBy"; never the password
# or reset token.
PUBLIC_OWNER_FIELDS = ("id", "name", "username", "email", "phone", "company", "photo", "logo")


class User(TimestampMixin, Base):
    """
    User account

    `roles` is a set stored as a JSON list; writers go through add_role()
    so a role is never duplicated.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Authentication
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    roles: Mapped[List[str]] = mapped_column(JSON, default=lambda: [UserRole.BUYER.value], nullable=False)

    # Profile
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    about: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Password reset
    reset_password_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    reset_password_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    listings = relationship("Listing", back_populates="owner", cascade="all, delete-orphan")
    wishlist_entries = relationship("WishlistEntry", back_populates="user", cascade="all, delete-orphan")
    enquiries = relationship("ListingEnquiry", back_populates="user", cascade="all, delete-orphan")

    def add_role(self, role: str) -> bool:
        """Add a role if missing. Returns True when the set changed."""
        current = list(self.roles or [])
        if role in current:
            return False
        self.roles = current + [role]
        return True

    def public_profile(self) -> dict:
        return {
            field: (str(getattr(self, field)) if field == "id" else getattr(self, field))
            for field in PUBLIC_OWNER_FIELDS
        }

    def to_dict(self) -> dict:
        """Account view returned to the user themself."""
        return {
            **self.public_profile(),
            "address": self.address,
            "about": self.about,
            "roles": list(self.roles or []),
            "wishlist": [str(e.listing_id) for e in self.wishlist_entries],
            "enquiredProperties": [str(e.listing_id) for e in self.enquiries],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class WishlistEntry(Base):
    """Wishlist membership; the composite key keeps the set de-duplicated."""
    __tablename__ = "wishlist_entries"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="wishlist_entries")
    listing = relationship("Listing", back_populates="wishlist_entries")


class ListingEnquiry(Base):
    """Listings a user has enquired about (add-only)."""
    __tablename__ = "listing_enquiries"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="enquiries")
    listing = relationship("Listing", back_populates="enquiries")
