# File: dispatchwatch/core/errors.py


class DispatchWatchError(Exception):
    """Base class for all errors raised by the pipeline."""


# --- External tools (ffmpeg / ffprobe) ---

class ExternalToolError(DispatchWatchError):
    """The tool process could not be spawned at all."""


class ExternalToolTimeout(ExternalToolError):
    """The tool process exceeded its deadline and was killed."""


# --- Speech-to-text providers ---

class SpeechToTextError(DispatchWatchError):
    pass


class SttNetworkError(SpeechToTextError):
    """Transient transport failure. Worth another attempt."""


class SttQuotaError(SpeechToTextError):
    """Rate limit, exhausted quota or provider-side 5xx. Fall back to another provider."""


class SttMalformedAudioError(SpeechToTextError):
    """Provider rejected the audio itself. Retrying will not help."""


# --- Audio ---

class AudioEnhancementError(DispatchWatchError):
    pass


# --- Integrity ---

class IntegrityViolation(DispatchWatchError):
    """Programming or data-integrity failure. Must stop the current work item."""


class SequenceCollisionError(IntegrityViolation):
    pass
