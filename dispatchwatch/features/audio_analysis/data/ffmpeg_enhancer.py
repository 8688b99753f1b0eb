# File: dispatchwatch/features/audio_analysis/data/ffmpeg_enhancer.py
import uuid
import logging
from pathlib import Path
from typing import List
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.errors import AudioEnhancementError
from dispatchwatch.core.external_tools.interfaces import IExternalTool
from ..domain.interfaces import IAudioEnhancer
from ..domain.models import EnhancementOptions

logger = logging.getLogger(__name__)

# Whisper-friendly output: 16 kHz mono 16-bit PCM
OUTPUT_ARGS = ["-ar", "16000", "-ac", "1", "-c:a", "pcm_s16le", "-y"]

DISPATCH_RADIO_CHAIN = [
    "highpass=f=200",
    "lowpass=f=3400",
    "afftdn=nf=-30:nt=w:om=o:tr=true",
    "bandreject=f=60:w=5",
    "bandreject=f=120:w=5",
    "agate=threshold=0.02:attack=1:release=100:detection=peak",
    "compand=attacks=0.1:decays=0.3:soft-knee=6:points=-90/-90|-70/-60|-40/-30|-20/-15|-10/-10|0/-5",
    "equalizer=f=1000:t=h:w=200:g=2",
    "equalizer=f=2500:t=h:w=200:g=3",
    "equalizer=f=3500:t=h:w=200:g=2",
    "loudnorm=I=-14:TP=-1:LRA=7",
    "silenceremove=start_periods=1:start_silence=0.05:start_threshold=-40dB,areverse,"
    "silenceremove=start_periods=1:start_silence=0.05:start_threshold=-40dB,areverse",
]


def build_filter_chain(options: EnhancementOptions) -> List[str]:
    filters = []
    if options.high_pass:
        filters.append(f"highpass=f={options.high_pass_frequency}")
    if options.noise_reduction:
        filters.append("afftdn=nf=-25:nt=w:om=o")
    if options.compression:
        filters.append("compand=attacks=0.3:decays=0.8:soft-knee=2:points=-80/-80|-60/-40|-40/-30|-20/-20|0/-10")
    if options.silence_trimming:
        filters.append(
            "silenceremove=start_periods=1:start_silence=0.1:start_threshold=-50dB,areverse,"
            "silenceremove=start_periods=1:start_silence=0.1:start_threshold=-50dB,areverse"
        )
    if options.normalization:
        filters.append(f"loudnorm=I={options.target_loudness:g}:TP=-1.5:LRA=11")
    filters.append("equalizer=f=3000:t=h:w=200:g=3")
    return filters


class FFmpegAudioEnhancer(IAudioEnhancer):
    def __init__(self, ffmpeg: IExternalTool, temp_dir: Path = None):
        self.ffmpeg = ffmpeg
        self.temp_dir = Path(temp_dir or settings.ENHANCEMENT_DIR)

    def enhance(self, audio_path: str, level: int) -> str:
        if level >= 3:
            filters = DISPATCH_RADIO_CHAIN
            prefix = "ems_enhanced"
        else:
            filters = build_filter_chain(EnhancementOptions.for_level(level))
            prefix = "enhanced"

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        output = self.temp_dir / f"{prefix}_{uuid.uuid4()}.wav"

        logger.info(f"Enhancing {Path(audio_path).name} at level {level}")
        result = self.ffmpeg.run(["-hide_banner", "-i", audio_path, "-af", ",".join(filters), *OUTPUT_ARGS, str(output)])
        if not result.ok:
            raise AudioEnhancementError(f"Enhancement level {level} failed: {result.stderr[-500:]}")

        return str(output)

    def cleanup(self, enhanced_path: str) -> None:
        path = Path(enhanced_path)
        # Only ever delete what we rendered ourselves
        if self.temp_dir.resolve() not in path.resolve().parents:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clean up enhanced audio {path.name}: {e}")
