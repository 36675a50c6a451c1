"""
Property Ad Routes

Owner endpoints (JWT required):
  POST   /api/upload-image                 store photos, return {url, key, uploadedBy}
  DELETE /api/remove-image                 remove a stored photo
  POST   /api/create-ad                    create listing (multipart: payload + images)
  PUT    /api/update-ad/{slug}             update listing
  DELETE /api/delete-ad/{slug}             delete listing
  PUT    /api/update-ad-status/{slug}      change listing status
  GET    /api/user-ads/{page}              caller's listings

Buyer endpoints (JWT required):
  POST   /api/contact-agent                enquire about a listing
  PUT    /api/toggle-wish-list/{ad_id}     add / remove wishlist entry
  GET    /api/enquired-ads/{page}          listings the caller enquired about
  GET    /api/wishlist/{page}              caller's wishlist

Public endpoints:
  GET    /api/ad/{slug}                    listing detail + related listings
  GET    /api/ads/{page}                   browse published listings
  POST   /api/search-ads                   filtered radius search
"""
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import (
    get_current_user, get_current_user_optional, get_geocoder,
    get_image_store, get_notifier, to_raw_images,
)
from app.models.listing import ListingAction
from app.models.user import User
from app.schemas.listing import ContactAgentRequest, ListingPayload, RemoveImageRequest, StatusUpdate
from app.schemas.search import SearchFilters
from app.services.engagement_service import EngagementService
from app.services.listing_service import ListingService
from app.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ads"])


def _parse_payload(raw: Optional[str]) -> ListingPayload:
    try:
        return ListingPayload.model_validate_json(raw or "{}")
    except ValidationError as e:
        raise RequestValidationError(e.errors())


# ── Images ─────────────────────────────────────────────────────────────────────

@router.post("/upload-image")
def upload_image(
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_store=Depends(get_image_store),
):
    svc = ListingService(db, images=image_store)
    return svc.upload_images(current_user, to_raw_images(images))


@router.delete("/remove-image")
def remove_image(
    body: RemoveImageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_store=Depends(get_image_store),
):
    svc = ListingService(db, images=image_store)
    return svc.remove_image(current_user, body.key, body.uploaded_by)


# ── Listing lifecycle ──────────────────────────────────────────────────────────

@router.post("/create-ad")
def create_ad(
    payload: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
    image_store=Depends(get_image_store),
):
    """Create a listing from a JSON `payload` form field and `images` files."""
    svc = ListingService(db, geocoder=geocoder, images=image_store)
    return svc.create_listing(current_user, _parse_payload(payload), to_raw_images(images))


@router.get("/ad/{slug}")
def read_ad(
    slug: str,
    viewer: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    return ListingService(db).read_listing(slug, viewer)


@router.get("/ads/{page}")
def list_ads(
    page: int,
    action: Optional[ListingAction] = Query(None),
    db: Session = Depends(get_db),
):
    return ListingService(db).list_published(page, action.value if action else None)


@router.put("/update-ad/{slug}")
def update_ad(
    slug: str,
    payload: ListingPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
):
    svc = ListingService(db, geocoder=geocoder)
    return svc.update_listing(current_user, slug, payload)


@router.delete("/delete-ad/{slug}")
def delete_ad(
    slug: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_store=Depends(get_image_store),
):
    svc = ListingService(db, images=image_store)
    return svc.delete_listing(current_user, slug)


@router.get("/user-ads/{page}")
def user_ads(
    page: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ListingService(db).list_user_listings(current_user, page)


@router.put("/update-ad-status/{slug}")
def update_ad_status(
    slug: str,
    body: StatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ListingService(db).update_status(current_user, slug, body.status)


# ── Engagement ─────────────────────────────────────────────────────────────────

@router.post("/contact-agent")
def contact_agent(
    body: ContactAgentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    svc = EngagementService(db, notifier)
    return svc.contact_agent(current_user, body.ad_id, body.message)


@router.put("/toggle-wish-list/{ad_id}")
def toggle_wish_list(
    ad_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).toggle_wishlist(current_user, ad_id)


@router.get("/enquired-ads/{page}")
def enquired_ads(
    page: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).enquired_listings(current_user, page)


@router.get("/wishlist/{page}")
def wishlist(
    page: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return EngagementService(db).wishlist_listings(current_user, page)


# ── Search ─────────────────────────────────────────────────────────────────────

@router.post("/search-ads")
def search_ads(
    filters: SearchFilters,
    db: Session = Depends(get_db),
    geocoder=Depends(get_geocoder),
):
    return SearchService(db, geocoder).search(filters)
