# File: dispatchwatch/features/audio_analysis/data/ffmpeg_analyzer.py
import os
import re
import math
import logging
import tempfile
from pathlib import Path
from typing import List, Tuple
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.external_tools.interfaces import IExternalTool
from ..domain.interfaces import ISignalAnalyzer
from ..domain.models import SignalAnalysis

logger = logging.getLogger(__name__)

SILENCE_THRESHOLD_DB = -35
MIN_VOICE_DURATION = 0.5
BEEP_ENERGY_THRESHOLD = 0.85
MIN_SPEECH_RATIO = 0.2
RMS_SAMPLE_FRAMES = 50

_RMS_LINE = re.compile(r"RMS_level=(-?\d+(?:\.\d+)?)")
_SILENCE_LINE = re.compile(r"silence_duration:\s*(\d+(?:\.\d+)?)")


class FFmpegSignalAnalyzer(ISignalAnalyzer):
    """
    Speech / noise classifier built on ffprobe + ffmpeg filters
    (silencedetect, astats, silenceremove). Trimmed copies get a unique
    name in work_dir and belong to the caller.
    """
    def __init__(self, ffmpeg: IExternalTool, ffprobe: IExternalTool, work_dir: Path = None):
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.work_dir = Path(work_dir or settings.ENHANCEMENT_DIR)

    def analyze(self, audio_path: str) -> SignalAnalysis:
        if not Path(audio_path).exists():
            return SignalAnalysis(
                is_pure_noise=True,
                has_voice_activity=False,
                duration=0.0,
                silence_ratio=1.0,
                energy_ratio=0.0,
                error="Audio file not found"
            )

        duration = self.get_duration(audio_path)
        energy_ratio = self._monotone_ratio(audio_path)
        has_voice, silence_ratio = self._voice_activity(audio_path, duration)

        trimmed_path = None
        if has_voice and 0 < silence_ratio < 0.7:
            trimmed_path = self._trim_silence(audio_path)

        is_noise, reason = self.classify(has_voice, energy_ratio, silence_ratio)
        if is_noise:
            logger.info(f"Clip {Path(audio_path).name} is noise: {reason}")

        return SignalAnalysis(
            is_pure_noise=is_noise,
            has_voice_activity=has_voice,
            duration=duration,
            silence_ratio=silence_ratio,
            energy_ratio=energy_ratio,
            trimmed_path=trimmed_path
        )

    @staticmethod
    def classify(has_voice: bool, energy_ratio: float, silence_ratio: float) -> Tuple[bool, str]:
        if not has_voice:
            return True, "no voice activity"
        if energy_ratio > BEEP_ENERGY_THRESHOLD:
            return True, f"monotone ratio {energy_ratio:.2f}"
        if silence_ratio > 0.95:
            return True, f"silence ratio {silence_ratio:.2f}"
        if energy_ratio > 0.7 and silence_ratio > 0.5:
            return True, "radio static"
        if 1 - silence_ratio < MIN_SPEECH_RATIO:
            return True, f"speech ratio {(1 - silence_ratio) * 100:.1f}%"
        return False, ""

    def get_duration(self, audio_path: str) -> float:
        result = self.ffprobe.run([
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            audio_path
        ])
        if not result.ok:
            logger.warning(f"ffprobe could not read duration of {audio_path}")
            return 0.0
        try:
            return float(result.stdout.strip())
        except ValueError:
            return 0.0

    def _monotone_ratio(self, audio_path: str) -> float:
        result = self.ffmpeg.run([
            "-hide_banner", "-nostats",
            "-i", audio_path,
            "-af", "astats=metadata=1:reset=1,ametadata=print:key=lavfi.astats.Overall.RMS_level",
            "-f", "null", "-"
        ])
        if not result.ok:
            return 0.5

        levels = [float(v) for v in _RMS_LINE.findall(result.stderr + result.stdout)][:RMS_SAMPLE_FRAMES]
        return self.monotone_from_levels(levels)

    @staticmethod
    def monotone_from_levels(levels: List[float]) -> float:
        """Low spread in per-frame RMS means a steady tone."""
        if not levels:
            return 0.5
        mean = sum(levels) / len(levels)
        std_dev = math.sqrt(sum((v - mean) ** 2 for v in levels) / len(levels))
        return 0.9 if std_dev < 3 else 0.3

    def _voice_activity(self, audio_path: str, duration: float) -> Tuple[bool, float]:
        result = self.ffmpeg.run([
            "-hide_banner", "-nostats",
            "-i", audio_path,
            "-af", f"silencedetect=n={SILENCE_THRESHOLD_DB}dB:d=0.3",
            "-f", "null", "-"
        ])
        if not result.ok:
            # Could not measure; do not throw away a clip that may hold speech
            return True, 0.5

        total_silence = sum(float(v) for v in _SILENCE_LINE.findall(result.stderr))
        silence_ratio = min(1.0, total_silence / duration) if duration > 0 else 1.0
        has_voice = silence_ratio < 0.9 and duration > MIN_VOICE_DURATION
        return has_voice, silence_ratio

    def _trim_silence(self, audio_path: str):
        source = Path(audio_path)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=f"{source.stem}_trimmed_", suffix=source.suffix, dir=self.work_dir)
        os.close(fd)
        output = Path(name)

        remove = (f"silenceremove=start_periods=1:start_duration=0.2:"
                  f"start_threshold={SILENCE_THRESHOLD_DB}dB:detection=peak")
        result = self.ffmpeg.run([
            "-hide_banner", "-i", audio_path,
            "-af", f"{remove},aformat=dblp,areverse,{remove},aformat=dblp,areverse",
            "-y", str(output)
        ])
        if result.ok and output.stat().st_size > 0:
            return str(output)
        logger.warning(f"Silence trim failed for {source.name}")
        output.unlink(missing_ok=True)
        return None
