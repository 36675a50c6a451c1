from app.services import auth_service
from app.services.engagement_service import EngagementService
from app.services.listing_service import ListingService, serialize_listing
from app.services.search_service import SearchService, build_search_query

__all__ = [
    "auth_service",
    "EngagementService",
    "ListingService",
    "SearchService",
    "build_search_query",
    "serialize_listing",
]
