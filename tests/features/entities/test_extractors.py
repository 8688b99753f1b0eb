import pytest
from dispatchwatch.features.entities.domain.interfaces import IAddressStrategy
from dispatchwatch.features.entities.domain.models import AddressCandidate
from dispatchwatch.features.entities.service.address_extractor import AddressExtractor, address_extractor
from dispatchwatch.features.entities.service.unit_extractor import unit_extractor


class FixedStrategy(IAddressStrategy):
    """Always answers with the same candidate."""
    def __init__(self, name: str, confidence: float):
        self.name = name
        self.confidence = confidence

    def find(self, transcript: str):
        return AddressCandidate(f"{self.name} address", self.confidence, self.name)


def test_unit_sequence_wins_for_dispatch_readout():
    """
    Verifies that:
    1. Dispatch readouts (units, then location) resolve via the unit-sequence strategy.
    2. The address is normalised and excludes the call type.
    """
    candidate = address_extractor.extract("Medic 12, 450 North Delaware Street, chest pain")

    assert candidate is not None
    assert candidate.address == "450 North Delaware Street"
    assert candidate.method == "unit_sequence"
    assert candidate.confidence == 0.95


def test_contextual_cue_without_units():
    candidate = address_extractor.extract("respond to 1200 Main Street for a fall")

    assert candidate.address == "1200 Main Street"
    assert candidate.method == "contextual_pattern"


def test_intersection():
    candidate = address_extractor.extract("Washington Street and Meridian Street")

    assert candidate.method == "intersection_pattern"
    assert "Washington Street" in candidate.address
    assert "Meridian Street" in candidate.address


def test_no_address_is_a_normal_outcome():
    assert address_extractor.extract("Copy, en route") is None
    assert address_extractor.extract("") is None


def test_chain_order_beats_higher_confidence_later():
    """The first strategy over the floor wins, even if a later one scores higher."""
    extractor = AddressExtractor([
        FixedStrategy("weak", 0.5),
        FixedStrategy("first", 0.7),
        FixedStrategy("strong", 0.99),
    ])

    assert extractor.extract("anything").method == "first"


def test_floor_falls_through_to_legacy():
    extractor = AddressExtractor([FixedStrategy("weak", 0.6)])
    candidate = extractor.extract("units going to 77 Oak Drive now")

    assert candidate.method == "legacy_pattern"
    assert candidate.address == "77 Oak Drive"


@pytest.mark.parametrize("transcript,expected", [
    ("Medic 12, 450 North Delaware Street, chest pain", ["Medic 12"]),
    ("Medic 12 and Engine 5, Medic 12 repeat", ["Medic 12", "Engine 5"]),
    ("Med 7 with Amb 43", ["Medic 7", "Ambulance 43"]),
    ("copy that", []),
])
def test_unit_labels(transcript, expected):
    assert unit_extractor.labels(transcript) == expected


def test_unit_mentions():
    assert unit_extractor.mentions("Methodist, this is medic 12 en route", "Medic 12")
    assert not unit_extractor.mentions("Methodist, this is medic 12 en route", "Medic 1")
