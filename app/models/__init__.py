# Import all models in correct order to avoid circular imports
from app.models.user import User, UserRole, WishlistEntry, ListingEnquiry
from app.models.listing import Listing, ListingStatus, ListingAction, PropertyType

__all__ = [
    "User",
    "UserRole",
    "WishlistEntry",
    "ListingEnquiry",
    "Listing",
    "ListingStatus",
    "ListingAction",
    "PropertyType",
]
