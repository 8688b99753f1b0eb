import sys
import pytest
from dispatchwatch.core.errors import ExternalToolError, ExternalToolTimeout
from dispatchwatch.core.external_tools.subprocess_tool import SubprocessTool


def test_missing_binary_raises_spawn_error():
    tool = SubprocessTool("/nonexistent/dispatchwatch-tool")
    with pytest.raises(ExternalToolError):
        tool.run(["-version"])


def test_non_zero_exit_is_returned_not_raised():
    """A failing tool is data for the caller, not an exception."""
    tool = SubprocessTool(sys.executable)
    result = tool.run(["-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"])

    assert result.exit_code == 3
    assert not result.ok
    assert "boom" in result.stderr


def test_timeout_raises():
    tool = SubprocessTool(sys.executable)
    with pytest.raises(ExternalToolTimeout):
        tool.run(["-c", "import time; time.sleep(5)"], timeout=0.2)
