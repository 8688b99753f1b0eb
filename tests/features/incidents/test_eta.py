import pytest
import requests
from dispatchwatch.features.incidents.data.hospitals import find_hospital
from dispatchwatch.features.incidents.data.nominatim_geocoder import NominatimGeocoder
from dispatchwatch.features.incidents.data.travel_time import (
    GoogleDistanceEstimator, HaversineEstimator, haversine_miles, minutes_for_distance
)
from dispatchwatch.features.incidents.service.eta import closest_hospital, location_eta, parse_stated_eta


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class FakeSession:
    """Replays canned responses and records every request."""
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.mark.parametrize("text,minutes", [
    ("Eskenazi, Medic 12, ETA 10 minutes", 10.0),
    ("estimated time of arrival of twelve minutes", 12.0),
    ("we're about 7 minutes out", 7.0),
    ("ETA is approximately five", 5.0),
    ("ETA 95 minutes", None),
    ("Medic 12 en route", None),
    ("", None),
])
def test_parse_stated_eta(text, minutes):
    assert parse_stated_eta(text) == minutes


@pytest.mark.parametrize("location,minutes", [
    ("I-465 at Keystone", 12.0),
    ("Interstate 70 eastbound", 12.0),
    ("downtown near Monument Circle", 6.0),
    ("residential cul-de-sac", 10.0),
    ("450 North Delaware Street", 8.0),
    (None, 8.0),
])
def test_location_eta(location, minutes):
    assert location_eta(location, default_minutes=8.0) == minutes


def test_closest_hospital_and_travel_time():
    hospital, miles = closest_hospital(39.7850, -86.1710)

    assert hospital.name == "IU Health Methodist Hospital"
    assert miles < 0.1
    assert minutes_for_distance(10) == 17.0
    assert minutes_for_distance(0) == 2.0
    assert haversine_miles(39.7892, -86.1655, 39.7892, -86.1655) == 0.0


def test_haversine_estimator():
    estimate = HaversineEstimator().estimate(39.7892, -86.1655, "somewhere", 39.8758, -86.2119)

    assert estimate.source == "haversine"
    assert 6 < estimate.distance_miles < 7
    assert estimate.duration_minutes == minutes_for_distance(haversine_miles(39.7892, -86.1655, 39.8758, -86.2119))


@pytest.mark.parametrize("name,expected", [
    ("Eskenazi", "Eskenazi Hospital"),
    ("IU Methodist", "IU Health Methodist Hospital"),
    ("IU Riley", "Riley Hospital for Children"),
    ("Community North", None),
    (None, None),
])
def test_find_hospital(name, expected):
    found = find_hospital(name)
    assert (found.name if found else None) == expected


def test_geocoder_adds_city_and_caches():
    """
    Verifies that:
    1. Partial addresses are searched within Indianapolis.
    2. A second lookup of the same address is served from cache.
    """
    # 1. Arrange
    session = FakeSession(FakeResponse([
        {"lat": "39.7795", "lon": "-86.1530", "display_name": "450, North Delaware Street", "importance": 0.6}
    ]))
    geocoder = NominatimGeocoder(session=session, min_interval=0)

    # 2. Act
    first = geocoder.geocode("450 North Delaware Street")
    second = geocoder.geocode("450 North Delaware Street")

    # 3. Assert
    assert first == second
    assert (first.latitude, first.longitude) == (39.7795, -86.1530)
    assert first.confidence == 0.6
    assert len(session.requests) == 1
    assert session.requests[0]["params"]["q"] == "450 North Delaware Street, Indianapolis, IN, USA"
    assert session.requests[0]["headers"]["User-Agent"]


@pytest.mark.parametrize("response", [
    FakeResponse([]),
    FakeResponse({"error": "rate limited"}, status=429),
    requests.ConnectionError("offline"),
])
def test_geocoder_misses_are_none(response):
    geocoder = NominatimGeocoder(session=FakeSession(response), min_interval=0)

    assert geocoder.geocode("1 Nowhere Lane") is None
    assert geocoder.geocode("   ") is None


def test_google_estimator_parses_distance_matrix():
    session = FakeSession(FakeResponse({
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "distance": {"value": 8047}, "duration": {"value": 720}}]}],
    }))

    estimate = GoogleDistanceEstimator(api_key="k", session=session).estimate(
        39.77, -86.15, "720 Eskenazi Avenue", 39.7892, -86.1655
    )

    assert estimate.source == "google"
    assert estimate.distance_miles == 5.0
    assert estimate.duration_minutes == 12.0
    assert session.requests[0]["params"]["origins"] == "39.77,-86.15"


def test_google_estimator_falls_back_to_straight_line():
    session = FakeSession(FakeResponse({"status": "REQUEST_DENIED", "error_message": "bad key"}))

    estimate = GoogleDistanceEstimator(api_key="k", session=session).estimate(
        39.77, -86.15, "720 Eskenazi Avenue", 39.7892, -86.1655
    )

    assert estimate.source == "haversine"
