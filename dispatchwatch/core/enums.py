# File: dispatchwatch/core/enums.py

from enum import Enum, unique

@unique
class CallStatus(str, Enum):
    ACTIVE = "active"
    CLEARED = "cleared"
    ARCHIVED = "archived"

@unique
class VoiceType(str, Enum):
    AUTOMATED_VOICE = "automated_voice"
    HUMAN_VOICE = "human_voice"

@unique
class HospitalCallStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"

@unique
class SpeakerType(str, Enum):
    EMS = "ems"
    HOSPITAL = "hospital"

@unique
class IncidentStatus(str, Enum):
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ARRIVING_SHORTLY = "arriving_shortly"
    COMPLETED = "completed"

@unique
class TranscriptionStage(str, Enum):
    STARTING = "starting"
    ANALYZING = "analyzing"
    TRANSCRIBING = "transcribing"
    CLEANUP = "cleanup"
    CLASSIFICATION = "classification"
    COMPLETE = "complete"
    FAILED = "failed"

@unique
class RetryStage(str, Enum):
    ANALYZING = "analyzing"
    ENHANCING = "enhancing"
    TRANSCRIBING = "transcribing"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    FAILED = "failed"
