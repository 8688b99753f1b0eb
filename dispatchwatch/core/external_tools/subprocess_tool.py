# File: dispatchwatch/core/external_tools/subprocess_tool.py

import subprocess
import logging
from typing import Optional, Sequence
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.errors import ExternalToolError, ExternalToolTimeout
from .interfaces import IExternalTool, ToolResult

logger = logging.getLogger(__name__)


class SubprocessTool(IExternalTool):
    def __init__(self, binary: str, default_timeout: Optional[float] = None):
        self.binary = binary
        self.default_timeout = default_timeout or settings.EXTERNAL_TOOL_TIMEOUT

    def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ToolResult:
        cmd = [self.binary, *[str(a) for a in args]]
        deadline = timeout or self.default_timeout
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            completed = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=deadline
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolTimeout(f"{self.binary} timed out after {deadline}s") from e
        except OSError as e:
            raise ExternalToolError(f"Could not start {self.binary}: {e}") from e

        return ToolResult(
            stdout=completed.stdout.decode(errors="replace"),
            stderr=completed.stderr.decode(errors="replace"),
            exit_code=completed.returncode
        )


def ffmpeg() -> SubprocessTool:
    return SubprocessTool(settings.FFMPEG_BINARY)


def ffprobe() -> SubprocessTool:
    return SubprocessTool(settings.FFPROBE_BINARY)
