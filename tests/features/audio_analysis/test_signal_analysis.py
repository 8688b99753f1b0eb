from pathlib import Path
import pytest
from dispatchwatch.core.errors import AudioEnhancementError
from dispatchwatch.core.external_tools.interfaces import IExternalTool, ToolResult
from dispatchwatch.features.audio_analysis.data.ffmpeg_analyzer import FFmpegSignalAnalyzer
from dispatchwatch.features.audio_analysis.data.ffmpeg_enhancer import (
    DISPATCH_RADIO_CHAIN, FFmpegAudioEnhancer, build_filter_chain
)
from dispatchwatch.features.audio_analysis.domain.models import EnhancementOptions


class FakeFFmpeg(IExternalTool):
    """
    Answers ffprobe/ffmpeg invocations by the filter they ask for.
    Writes the output file for render commands so callers see a real path.
    """
    def __init__(self, duration="6.0", rms_levels=(-20, -31, -18, -27, -40), silences=(1.2,), fail=False):
        self.duration = duration
        self.rms_levels = rms_levels
        self.silences = silences
        self.fail = fail
        self.calls = []

    def run(self, args, timeout=None):
        self.calls.append(list(args))
        joined = " ".join(args)
        if self.fail:
            return ToolResult("", "Invalid data found when processing input", 1)
        if "format=duration" in joined:
            return ToolResult(f"{self.duration}\n", "", 0)
        if "astats" in joined:
            lines = "\n".join(f"lavfi.astats.Overall.RMS_level={v}" for v in self.rms_levels)
            return ToolResult("", lines, 0)
        if "silencedetect" in joined:
            lines = "\n".join(f"[silencedetect] silence_end: 3 | silence_duration: {s}" for s in self.silences)
            return ToolResult("", lines, 0)
        Path(args[-1]).write_bytes(b"RENDERED")
        return ToolResult("", "", 0)


def test_speech_clip_is_kept_and_trimmed(audio_file, tmp_path):
    # 1. Arrange
    tool = FakeFFmpeg()
    work_dir = tmp_path / "work"
    analyzer = FFmpegSignalAnalyzer(tool, tool, work_dir=work_dir)

    # 2. Act
    analysis = analyzer.analyze(str(audio_file))

    # 3. Assert
    assert not analysis.is_pure_noise
    assert analysis.has_voice_activity
    assert analysis.duration == 6.0
    assert analysis.silence_ratio == pytest.approx(0.2)
    assert analysis.energy_ratio == 0.3
    trimmed = Path(analysis.trimmed_path)
    assert trimmed.parent == work_dir
    assert trimmed.name.startswith("clip_trimmed_") and trimmed.suffix == ".m4a"
    assert trimmed.exists()
    assert audio_file.exists()


def test_each_analysis_gets_its_own_trimmed_copy(audio_file, tmp_path):
    """
    Verifies that:
    1. Two analyses of the same clip never share a trimmed file.
    2. Deleting one copy leaves the other intact.
    """
    tool = FakeFFmpeg()
    analyzer = FFmpegSignalAnalyzer(tool, tool, work_dir=tmp_path / "work")

    first = analyzer.analyze(str(audio_file)).trimmed_path
    second = analyzer.analyze(str(audio_file)).trimmed_path

    assert first != second
    Path(first).unlink()
    assert Path(second).exists()


def test_failed_trim_leaves_no_file_behind(audio_file, tmp_path):
    class RenderFails(FakeFFmpeg):
        def run(self, args, timeout=None):
            if "silenceremove" in " ".join(args):
                self.calls.append(list(args))
                return ToolResult("", "Error while filtering", 1)
            return super().run(args, timeout)

    tool = RenderFails()
    work_dir = tmp_path / "work"

    analysis = FFmpegSignalAnalyzer(tool, tool, work_dir=work_dir).analyze(str(audio_file))

    assert analysis.trimmed_path is None
    assert list(work_dir.iterdir()) == []


def test_steady_tone_is_noise(audio_file, tmp_path):
    tool = FakeFFmpeg(rms_levels=(-12.0, -12.4, -11.9, -12.1))

    analysis = FFmpegSignalAnalyzer(tool, tool, work_dir=tmp_path / "work").analyze(str(audio_file))

    assert analysis.is_pure_noise
    assert analysis.energy_ratio == 0.9


def test_mostly_silent_clip_is_noise(audio_file):
    tool = FakeFFmpeg(silences=(5.7,))

    analysis = FFmpegSignalAnalyzer(tool, tool).analyze(str(audio_file))

    assert analysis.is_pure_noise
    assert not analysis.has_voice_activity
    assert analysis.trimmed_path is None


def test_missing_file_is_reported_without_tools(tmp_path):
    tool = FakeFFmpeg()

    analysis = FFmpegSignalAnalyzer(tool, tool).analyze(str(tmp_path / "missing.m4a"))

    assert analysis.is_pure_noise
    assert analysis.error == "Audio file not found"
    assert tool.calls == []


def test_unmeasurable_clip_is_given_the_benefit_of_the_doubt(audio_file, tmp_path):
    """When ffmpeg cannot read the clip the analyzer keeps it as possible speech."""
    tool = FakeFFmpeg(fail=True)

    analysis = FFmpegSignalAnalyzer(tool, tool, work_dir=tmp_path / "work").analyze(str(audio_file))

    assert analysis.duration == 0.0
    assert analysis.has_voice_activity
    assert analysis.energy_ratio == 0.5


@pytest.mark.parametrize("has_voice,energy,silence,noise", [
    (False, 0.3, 0.2, True),
    (True, 0.9, 0.2, True),
    (True, 0.3, 0.96, True),
    (True, 0.75, 0.6, True),
    (True, 0.3, 0.85, True),
    (True, 0.3, 0.4, False),
])
def test_classify(has_voice, energy, silence, noise):
    assert FFmpegSignalAnalyzer.classify(has_voice, energy, silence)[0] is noise


def test_enhancer_levels_and_cleanup(audio_file, tmp_path):
    # 1. Arrange
    tool = FakeFFmpeg()
    enhancer = FFmpegAudioEnhancer(tool, temp_dir=tmp_path / "enhanced")

    # 2. Act
    light = enhancer.enhance(str(audio_file), 1)
    radio = enhancer.enhance(str(audio_file), 3)

    # 3. Assert
    assert Path(light).name.startswith("enhanced_")
    assert Path(radio).name.startswith("ems_enhanced_")
    assert tool.calls[1][tool.calls[1].index("-af") + 1] == ",".join(DISPATCH_RADIO_CHAIN)

    enhancer.cleanup(light)
    enhancer.cleanup(str(audio_file))
    assert not Path(light).exists()
    assert audio_file.exists()


def test_enhancer_failure_raises(audio_file, tmp_path):
    enhancer = FFmpegAudioEnhancer(FakeFFmpeg(fail=True), temp_dir=tmp_path / "enhanced")

    with pytest.raises(AudioEnhancementError):
        enhancer.enhance(str(audio_file), 2)


def test_filter_chain_grows_with_level():
    light = build_filter_chain(EnhancementOptions.for_level(1))
    medium = build_filter_chain(EnhancementOptions.for_level(2))

    assert not any(f.startswith("highpass") for f in light)
    assert medium[0] == "highpass=f=100"
    assert any(f.startswith("compand") for f in medium)
    assert light[-1] == medium[-1] == "equalizer=f=3000:t=h:w=200:g=3"
