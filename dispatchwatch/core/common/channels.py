# File: dispatchwatch/core/common/channels.py
"""
Talkgroup catalog for the MESA trunked system.
Dispatch channels carry automated voice, hospital patches carry live crews.
"""
from dataclasses import dataclass
from typing import Dict, Optional
from dispatchwatch.core.enums import VoiceType

DISPATCH_CALL_TYPE = "Emergency Dispatch"
HOSPITAL_CALL_TYPE = "EMS-Hospital Communications"


@dataclass(frozen=True)
class ChannelInfo:
    talkgroup: int
    description: str
    category: str
    hospital_name: Optional[str] = None

    @property
    def is_hospital(self) -> bool:
        return self.category == "hospital"

    @property
    def is_dispatch(self) -> bool:
        return self.category == "dispatch"

    @property
    def voice_type(self) -> VoiceType:
        return VoiceType.AUTOMATED_VOICE if self.is_dispatch else VoiceType.HUMAN_VOICE

    @property
    def initial_call_type(self) -> str:
        return HOSPITAL_CALL_TYPE if self.is_hospital else DISPATCH_CALL_TYPE


def _hospital(talkgroup: int, med: int, name: str) -> ChannelInfo:
    return ChannelInfo(talkgroup, f"Med {med:02d} - {name}", "hospital", name)


CHANNELS: Dict[int, ChannelInfo] = {c.talkgroup: c for c in [
    ChannelInfo(10202, "Fire/EMS Dispatch Primary", "dispatch"),
    ChannelInfo(10244, "Fire/EMS Dispatch Secondary", "dispatch"),
    _hospital(10255, 2, "Eskenazi"),
    _hospital(10256, 3, "IU Methodist"),
    _hospital(10257, 4, "Community East"),
    _hospital(10258, 5, "IU Riley"),
    _hospital(10259, 6, "St. Vincent 86th Street"),
    _hospital(10260, 7, "St. Vincent Castleton"),
    _hospital(10261, 8, "Community North"),
    _hospital(10262, 9, "Community South"),
    _hospital(10263, 10, "Community West"),
    _hospital(10264, 11, "IU University"),
    _hospital(10265, 12, "Peyton Manning Children's"),
    _hospital(10266, 13, "Franciscan South"),
    _hospital(10267, 14, "IU North"),
    _hospital(10268, 15, "Franciscan North"),
    _hospital(10269, 16, "Community Heart and Vascular"),
    _hospital(10270, 17, "VA"),
    _hospital(10271, 18, "Hendricks Regional"),
    _hospital(10272, 19, "St. Vincent Carmel"),
    _hospital(10273, 20, "Spare"),
]}


def channel_info(talkgroup: int) -> ChannelInfo:
    """Unknown talkgroups are treated as dispatch-style traffic."""
    return CHANNELS.get(int(talkgroup)) or ChannelInfo(int(talkgroup), f"Talkgroup {talkgroup}", "other")


def is_hospital_channel(talkgroup: int) -> bool:
    return channel_info(talkgroup).is_hospital


def is_dispatch_channel(talkgroup: int) -> bool:
    return channel_info(talkgroup).is_dispatch
