import pytest
from dispatchwatch.core.common.channels import (
    DISPATCH_CALL_TYPE, HOSPITAL_CALL_TYPE, channel_info, is_dispatch_channel, is_hospital_channel,
)
from dispatchwatch.core.common.confidence import clamp, confidence_band
from dispatchwatch.core.config.settings import parse_channel_list
from dispatchwatch.core.enums import VoiceType


def test_parse_channel_list_defaults_system():
    assert parse_channel_list("1:10202, 10255,,2:10244") == [(1, 10202), (1, 10255), (2, 10244)]


def test_dispatch_and_hospital_catalog():
    """
    Verifies that:
    1. Dispatch talkgroups are automated voice with the dispatch call type.
    2. Hospital talkgroups carry their hospital name and human voice.
    3. Unknown talkgroups are neither.
    """
    dispatch = channel_info(10202)
    assert dispatch.is_dispatch
    assert dispatch.voice_type == VoiceType.AUTOMATED_VOICE
    assert dispatch.initial_call_type == DISPATCH_CALL_TYPE

    hospital = channel_info(10256)
    assert hospital.is_hospital
    assert hospital.hospital_name == "IU Methodist"
    assert hospital.voice_type == VoiceType.HUMAN_VOICE
    assert hospital.initial_call_type == HOSPITAL_CALL_TYPE

    assert not is_hospital_channel(99999)
    assert not is_dispatch_channel(99999)
    assert is_hospital_channel(10273)


@pytest.mark.parametrize("value,expected", [(-0.2, 0.0), (0.5, 0.5), (1.7, 1.0)])
def test_clamp(value, expected):
    assert clamp(value) == expected


@pytest.mark.parametrize("value,band", [(0.95, "high"), (0.91, "high"), (0.75, "medium"), (0.69, "low")])
def test_confidence_band(value, band):
    assert confidence_band(value) == band
