# File: dispatchwatch/features/incidents/data/travel_time.py
import math
import logging
from typing import Optional
import requests
from dispatchwatch.core.config.settings import settings
from ..domain.interfaces import ITravelTimeEstimator
from ..domain.models import TravelEstimate

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959
AVERAGE_SPEED_MPH = 40
LOADING_MINUTES = 2
METERS_TO_MILES = 0.000621371


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def minutes_for_distance(miles: float) -> float:
    """Mixed urban/highway driving plus patient loading."""
    return float(round(miles / AVERAGE_SPEED_MPH * 60 + LOADING_MINUTES))


class HaversineEstimator(ITravelTimeEstimator):
    def estimate(self, lat: float, lon: float, destination_address: str,
                 dest_lat: float, dest_lon: float) -> Optional[TravelEstimate]:
        miles = haversine_miles(lat, lon, dest_lat, dest_lon)
        return TravelEstimate(round(miles, 1), minutes_for_distance(miles), "haversine")


class GoogleDistanceEstimator(ITravelTimeEstimator):
    """
    Google Distance Matrix driving time. Falls back to straight-line distance
    when the API has no answer.
    """
    BASE_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

    def __init__(self, api_key: str = None, session: requests.Session = None, timeout: float = 10):
        self.api_key = api_key or settings.GOOGLE_MAPS_API_KEY
        self.session = session or requests.Session()
        self.timeout = timeout
        self.fallback = HaversineEstimator()

    def estimate(self, lat: float, lon: float, destination_address: str,
                 dest_lat: float, dest_lon: float) -> Optional[TravelEstimate]:
        result = self._request(lat, lon, destination_address)
        return result or self.fallback.estimate(lat, lon, destination_address, dest_lat, dest_lon)

    def _request(self, lat: float, lon: float, destination: str) -> Optional[TravelEstimate]:
        try:
            response = self.session.get(
                self.BASE_URL,
                params={
                    "origins": f"{lat},{lon}",
                    "destinations": destination,
                    "units": "imperial",
                    "mode": "driving",
                    "key": self.api_key,
                },
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Distance Matrix request failed: {e}")
            return None

        if data.get("status") != "OK":
            logger.warning(f"Distance Matrix error: {data.get('status')} {data.get('error_message', '')}")
            return None

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError):
            return None
        if element.get("status") != "OK":
            return None

        return TravelEstimate(
            distance_miles=round(element["distance"]["value"] * METERS_TO_MILES, 1),
            duration_minutes=float(round(element["duration"]["value"] / 60)),
            source="google"
        )


def default_estimator() -> ITravelTimeEstimator:
    return GoogleDistanceEstimator() if settings.GOOGLE_MAPS_API_KEY else HaversineEstimator()
