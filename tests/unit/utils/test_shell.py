"""Unit tests for shell execution utilities."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from termxfer.utils.shell import CommandResult, run_command, run_shell, shell_args


class TestCommandResult:
    """Tests for CommandResult."""

    def test_success(self) -> None:
        """A zero exit code is a success."""
        assert CommandResult(stdout="", stderr="", returncode=0).success
        assert not CommandResult(stdout="", stderr="", returncode=2).success

    def test_output_joins_streams(self) -> None:
        """output is stdout followed by stderr."""
        result = CommandResult(stdout="out\n", stderr="err\n", returncode=1)
        assert result.output == "out\nerr\n"


class TestRunCommand:
    """Tests for run_command function."""

    @patch("termxfer.utils.shell.subprocess.run")
    def test_captures_output(self, mock_run: MagicMock) -> None:
        """Output and exit code are returned."""
        mock_run.return_value = MagicMock(stdout="hello\n", stderr="", returncode=0)

        result = run_command(["echo", "hello"])

        assert result == CommandResult(stdout="hello\n", stderr="", returncode=0)
        assert mock_run.call_args.kwargs["capture_output"] is True
        assert mock_run.call_args.kwargs["text"] is True

    @patch("termxfer.utils.shell.subprocess.run")
    def test_passes_cwd_and_timeout(self, mock_run: MagicMock) -> None:
        """Working directory and timeout reach subprocess.run."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["ls"], cwd="/srv", timeout=5.0)

        assert mock_run.call_args.kwargs["cwd"] == "/srv"
        assert mock_run.call_args.kwargs["timeout"] == 5.0

    @patch("termxfer.utils.shell.subprocess.run")
    def test_timeout_propagates(self, mock_run: MagicMock) -> None:
        """A timeout is raised to the caller."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="sleep", timeout=1)

        with pytest.raises(subprocess.TimeoutExpired):
            run_command(["sleep", "10"], timeout=1)


class TestShellArgs:
    """Tests for shell_args."""

    @patch("termxfer.utils.shell.os.name", "posix")
    def test_uses_login_shell(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The user's SHELL runs the command."""
        monkeypatch.setenv("SHELL", "/bin/zsh")
        assert shell_args("ls -la") == ["/bin/zsh", "-c", "ls -la"]

    @patch("termxfer.utils.shell.os.name", "posix")
    def test_falls_back_to_sh(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without SHELL, /bin/sh is used."""
        monkeypatch.delenv("SHELL", raising=False)
        assert shell_args("pwd") == ["/bin/sh", "-c", "pwd"]


class TestRunShell:
    """Tests for run_shell."""

    @patch("termxfer.utils.shell.os.name", "posix")
    @patch("termxfer.utils.shell.subprocess.run")
    def test_wraps_in_shell(self, mock_run: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
        """The command line runs through the user's shell with stdin closed."""
        monkeypatch.setenv("SHELL", "/bin/bash")
        mock_run.return_value = MagicMock(stdout="a\n", stderr="b\n", returncode=1)

        result = run_shell("ls | wc -l", cwd="/tmp")

        assert mock_run.call_args.args[0] == ["/bin/bash", "-c", "ls | wc -l"]
        assert mock_run.call_args.kwargs["stdin"] == subprocess.DEVNULL
        assert mock_run.call_args.kwargs["cwd"] == "/tmp"
        assert result.output == "a\nb\n"
        assert not result.success
