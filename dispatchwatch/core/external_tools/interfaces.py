# File: dispatchwatch/core/external_tools/interfaces.py

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class ToolResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class IExternalTool(ABC):
    """
    Narrow contract for invoking a command-line tool (ffmpeg, ffprobe).
    Lets audio code be tested against a fake without spawning processes.
    """
    @abstractmethod
    def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ToolResult:
        """
        Runs the tool with the given arguments (binary excluded).

        Returns:
            ToolResult. A non-zero exit code is returned, not raised.

        Raises:
            ExternalToolError: the process could not be started.
            ExternalToolTimeout: the deadline passed.
        """
        pass
