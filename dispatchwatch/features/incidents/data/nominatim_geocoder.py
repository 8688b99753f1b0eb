# File: dispatchwatch/features/incidents/data/nominatim_geocoder.py
import time
import logging
import threading
from typing import Dict, Optional
import requests
from dispatchwatch.core.common.confidence import clamp
from dispatchwatch.core.config.settings import settings
from ..domain.interfaces import IGeocoder
from ..domain.models import GeocodeResult

logger = logging.getLogger(__name__)

CITY_CONTEXT = "Indianapolis, IN, USA"


class NominatimGeocoder(IGeocoder):
    """
    OpenStreetMap search with a per-process cache and a minimum gap between requests.
    """
    def __init__(self, session: requests.Session = None, url: str = None, user_agent: str = None,
                 min_interval: float = None, timeout: float = 10):
        self.session = session or requests.Session()
        self.url = url or settings.GEOCODER_URL
        self.user_agent = user_agent or settings.GEOCODER_USER_AGENT
        self.min_interval = settings.GEOCODER_MIN_INTERVAL if min_interval is None else min_interval
        self.timeout = timeout
        self._cache: Dict[str, Optional[GeocodeResult]] = {}
        self._lock = threading.Lock()
        self._last_request = 0.0

    @staticmethod
    def with_city(address: str) -> str:
        if "indianapolis" in address.lower():
            return address
        return f"{address}, {CITY_CONTEXT}"

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        if not address or not address.strip():
            return None

        query = self.with_city(address.strip())
        if query in self._cache:
            return self._cache[query]

        result = self._request(query)
        self._cache[query] = result
        return result

    def _request(self, query: str) -> Optional[GeocodeResult]:
        with self._lock:
            wait = self.min_interval - (time.monotonic() - self._last_request)
            if wait > 0:
                time.sleep(wait)
            self._last_request = time.monotonic()

        try:
            response = self.session.get(
                self.url,
                params={"format": "json", "q": query, "limit": 1, "countrycodes": "us"},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Geocoding failed for '{query}': {e}")
            return None

        if not data:
            logger.debug(f"No geocoding result for '{query}'")
            return None

        top = data[0]
        return GeocodeResult(
            latitude=float(top["lat"]),
            longitude=float(top["lon"]),
            formatted_address=top.get("display_name", query),
            confidence=clamp(float(top.get("importance", 0.5)))
        )
