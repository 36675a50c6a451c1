"""
Engagement Service
Wishlist toggling, agent enquiries and the paginated views over both.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound, NotificationError, UpstreamFailure
from app.models.listing import Listing
from app.models.user import ListingEnquiry, User, WishlistEntry
from app.services.listing_service import paginate_listings

logger = logging.getLogger(__name__)


class EngagementService:
    def __init__(self, db: Session, notifier=None):
        self.db = db
        self.notifier = notifier

    def _get_listing(self, listing_id: uuid.UUID) -> Listing:
        listing = self.db.get(Listing, listing_id)
        if not listing:
            raise NotFound("Ad not found")
        return listing

    def _wishlist_ids(self, user: User):
        rows = self.db.query(WishlistEntry.listing_id).filter(WishlistEntry.user_id == user.id).all()
        return [str(row.listing_id) for row in rows]

    # ── Enquiries ─────────────────────────────────────────────────────────────

    def _record_enquiry(self, user: User, listing: Listing) -> None:
        if self.db.get(ListingEnquiry, (user.id, listing.id)):
            return
        try:
            self.db.add(ListingEnquiry(user_id=user.id, listing_id=listing.id))
            self.db.flush()
        except IntegrityError:
            # Recorded by a concurrent request
            self.db.rollback()

    def contact_agent(self, user: User, listing_id: uuid.UUID, message: str) -> Dict[str, Any]:
        listing = self._get_listing(listing_id)

        self._record_enquiry(user, listing)
        listing.contact_requests = list(listing.contact_requests or []) + [{
            "userId": str(user.id),
            "timestamp": datetime.utcnow().isoformat(),
            "message": message,
        }]
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"[enquiry] {user.email} enquired about listing {listing.id}")

        try:
            self.notifier.send_enquiry(listing, listing.owner, user, message)
        except NotificationError as e:
            logger.error(f"[enquiry] Email to owner of {listing.id} failed: {e}")
            raise UpstreamFailure("Contact agent failed. Please try again.") from e

        return {"success": True, "user": user.to_dict()}

    def enquired_listings(self, user: User, page: int) -> Dict[str, Any]:
        query = (
            self.db.query(Listing)
            .join(ListingEnquiry, ListingEnquiry.listing_id == Listing.id)
            .filter(ListingEnquiry.user_id == user.id)
        )
        return paginate_listings(query, page, settings.BROWSE_PAGE_SIZE)

    # ── Wishlist ──────────────────────────────────────────────────────────────

    def toggle_wishlist(self, user: User, listing_id: uuid.UUID) -> Dict[str, Any]:
        """Add the listing to the wishlist, or remove it when already there."""
        entry = self.db.get(WishlistEntry, (user.id, listing_id))

        if entry:
            self.db.delete(entry)
            self.db.commit()
            in_wishlist = False
            message = "Removed from wishlist"
        else:
            listing = self._get_listing(listing_id)
            self.db.add(WishlistEntry(user_id=user.id, listing_id=listing.id))
            listing.shortlists = list(listing.shortlists or []) + [{
                "userId": str(user.id),
                "timestamp": datetime.utcnow().isoformat(),
            }]
            try:
                self.db.commit()
            except IntegrityError:
                # Added by a concurrent request
                self.db.rollback()
            in_wishlist = True
            message = "Added to wishlist"

        logger.info(f"[wishlist] {user.email} {message.lower()} {listing_id}")
        return {
            "ok": True,
            "message": message,
            "inWishlist": in_wishlist,
            "wishlist": self._wishlist_ids(user),
        }

    def wishlist_listings(self, user: User, page: int) -> Dict[str, Any]:
        query = (
            self.db.query(Listing)
            .join(WishlistEntry, WishlistEntry.listing_id == Listing.id)
            .filter(WishlistEntry.user_id == user.id)
        )
        return paginate_listings(query, page, settings.BROWSE_PAGE_SIZE)
