import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from geopy.exc import GeopyError
from geopy.geocoders import GoogleV3

from app.core.config import settings
from app.core.exceptions import GeocodingError

logger = logging.getLogger(__name__)


@dataclass
class GeocodeResult:
    longitude: float
    latitude: float
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def coordinates(self) -> List[float]:
        return [self.longitude, self.latitude]


class GoogleGeocoder:
    """Turns a free-text address into coordinates via Google's geocoder."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        geolocator=None,
    ):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.timeout = timeout or settings.GEOCODING_TIMEOUT
        self._geolocator = geolocator

    @property
    def geolocator(self):
        if self._geolocator is None:
            self._geolocator = GoogleV3(api_key=self.api_key, timeout=self.timeout)
        return self._geolocator

    def geocode(self, address: str) -> GeocodeResult:
        """
        Geocode an address.

        Raises:
            GeocodingError: provider unreachable or misconfigured, or no result.
        """
        if not address or not address.strip():
            raise GeocodingError("Please enter a valid address")

        try:
            location = self.geolocator.geocode(address)
        except GeopyError as e:
            logger.error(f"[geocode] Request failed for '{address}': {e}")
            raise GeocodingError("Error in geocoding address") from e

        if location is None:
            logger.warning(f"[geocode] No result for '{address}'")
            raise GeocodingError("Please enter a valid address")

        logger.debug(f"[geocode] '{address}' -> ({location.longitude}, {location.latitude})")
        return GeocodeResult(
            longitude=float(location.longitude),
            latitude=float(location.latitude),
            raw=location.raw,
        )
