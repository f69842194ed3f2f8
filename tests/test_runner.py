"""
Tests for the subprocess wrapper, using the running interpreter as the tool.
"""

import subprocess
import sys
from unittest.mock import patch

import pytest

from hostdeploy.runner import CommandRunner


def test_captures_merged_output(tmp_path):
    log_file = tmp_path / "commands.log"
    echoed = []
    runner = CommandRunner(log_file=log_file, echo=echoed.append)

    result = runner.run([sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"],
                        cwd=tmp_path)

    assert result.ok
    assert sorted(result.output_lines) == ["err", "out"]
    assert sorted(echoed) == ["err", "out"]
    assert log_file.read_text().startswith("=== ")


def test_non_zero_exit_reported(tmp_path):
    result = CommandRunner().run([sys.executable, "-c", "import sys; print('boom'); sys.exit(3)"])

    assert not result.ok
    assert result.returncode == 3
    assert result.tail() == ["boom"]


def test_quiet_suppresses_echo():
    echoed = []
    CommandRunner(echo=echoed.append).run([sys.executable, "-c", "print('[]')"], quiet=True)
    assert echoed == []


def test_missing_executable():
    with pytest.raises(FileNotFoundError):
        CommandRunner().run(["definitely-not-a-real-binary-hostdeploy"])


def test_undecodable_output_is_replaced():
    result = CommandRunner().run([sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'ok\\xff\\n')"])

    assert result.ok
    assert result.output_lines == ["ok\ufffd"]


def test_unwritable_log_kills_child(tmp_path):
    runner = CommandRunner(log_file=tmp_path / "missing" / "commands.log")

    children = []
    real_popen = subprocess.Popen

    def spawn(*args, **kwargs):
        children.append(real_popen(*args, **kwargs))
        return children[-1]

    with patch("hostdeploy.runner.subprocess.Popen", side_effect=spawn):
        with pytest.raises(FileNotFoundError):
            runner.run([sys.executable, "-c", "import time; time.sleep(30)"])

    assert children[0].returncode is not None
