"""Tests for the agent loop, with a fake agent instead of a subprocess."""

import logging
import subprocess
from unittest.mock import patch

import pytest

from wiggum.config import LoopSettings
from wiggum.loop import (
    AgentError, COMPLETE_MARKER, build_prompt, main, run_agent, run_loop
)
from wiggum.manager import TaskManager
from wiggum.repository import PrdRepository
from conftest import make_task, write_prd


class FakeAgent:
    """Completes the highest-priority ready task on each call."""

    def __init__(self, prd_path):
        self.manager = TaskManager(PrdRepository(prd_path))
        self.commands = []

    def __call__(self, command):
        self.commands.append(command)
        ready = self.manager.get_ready_tasks()
        if not ready:
            return f"Nothing left. {COMPLETE_MARKER}"
        self.manager.complete_task(ready[0].id)
        return f"Completed task {ready[0].id}"


@pytest.fixture
def chain_prd(tmp_path):
    path = tmp_path / "prd.json"
    write_prd(path, [
        make_task("1", priority=2, feature="Set up project"),
        make_task("2", priority=1, feature="Build feature", dependencies=["1"]),
    ])
    return path


def settings_for(path, **kwargs):
    kwargs.setdefault("pause_seconds", 0)
    kwargs.setdefault("agent_command", ["agent", "run"])
    return LoopSettings(prd_path=path, progress_path=path.parent / "progress.txt", **kwargs)


class TestRunLoop:
    """Test cases for run_loop."""

    def test_stops_on_complete_marker(self, chain_prd, capsys):
        agent = FakeAgent(chain_prd)

        iterations = run_loop(settings_for(chain_prd), runner=agent)

        assert iterations == 3
        assert TaskManager(PrdRepository(chain_prd)).get_status().completed == 2
        out = capsys.readouterr().out
        assert "--- Iteration 3 ---" in out
        assert "PRD fully implemented." in out

    def test_respects_iteration_cap(self, chain_prd):
        agent = FakeAgent(chain_prd)
        pauses = []

        iterations = run_loop(settings_for(chain_prd, max_iterations=1), runner=agent, sleep=pauses.append)

        assert iterations == 1
        assert len(agent.commands) == 1
        assert pauses == []

    def test_pauses_between_iterations(self, chain_prd):
        pauses = []

        run_loop(settings_for(chain_prd, pause_seconds=0.5), runner=FakeAgent(chain_prd), sleep=pauses.append)

        assert pauses == [0.5, 0.5]

    def test_prompt_is_last_argument(self, chain_prd):
        agent = FakeAgent(chain_prd)

        run_loop(settings_for(chain_prd, max_iterations=1), runner=agent)

        command = agent.commands[0]
        assert command[:2] == ["agent", "run"]
        assert "#1 (P2) [feature] Set up project" in command[2]
        assert "Build feature" not in command[2]

    def test_missing_prd(self, tmp_path):
        with pytest.raises(AgentError):
            run_loop(settings_for(tmp_path / "missing.json"), runner=lambda cmd: "")


class TestBuildPrompt:
    """Test cases for the agent prompt."""

    def test_contains_context_and_instructions(self, chain_prd):
        settings = settings_for(chain_prd)

        text = build_prompt("TASK LIST {not a placeholder}", settings)

        assert text.startswith(f"Context: @{settings.progress_path}")
        assert "TASK LIST {not a placeholder}" in text
        assert f"task complete <id> --prd {chain_prd}" in text
        assert COMPLETE_MARKER in text


class TestRunAgent:
    """Test cases for the subprocess wrapper."""

    def test_returns_stdout(self):
        completed = subprocess.CompletedProcess(["agent"], 0, stdout="done\n")
        with patch("wiggum.loop.subprocess.run", return_value=completed) as run:
            assert run_agent(["agent", "prompt"]) == "done\n"
        assert run.call_args.args[0] == ["agent", "prompt"]

    def test_non_zero_exit(self):
        failed = subprocess.CompletedProcess(["agent"], 3, stdout="")
        with patch("wiggum.loop.subprocess.run", return_value=failed):
            with pytest.raises(AgentError, match="code 3"):
                run_agent(["agent"])

    def test_missing_executable(self):
        with patch("wiggum.loop.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(AgentError, match="not found"):
                run_agent(["no-such-agent"])


class TestMain:
    """Test cases for the wiggum entry point."""

    def test_numeric_argument_is_iteration_count(self, chain_prd, monkeypatch):
        captured = {}
        monkeypatch.setenv("PRD_PATH", str(chain_prd))
        monkeypatch.setattr("wiggum.loop.run_loop", lambda settings: captured.setdefault("s", settings))

        assert main(["20"]) == 0
        assert captured["s"].max_iterations == 20
        assert captured["s"].prd_path == chain_prd

    def test_path_and_iterations(self, chain_prd, monkeypatch):
        captured = {}
        monkeypatch.setattr("wiggum.loop.run_loop", lambda settings: captured.setdefault("s", settings))

        assert main([str(chain_prd), "5"]) == 0
        assert captured["s"].prd_path == chain_prd
        assert captured["s"].max_iterations == 5

    def test_missing_prd_exits_1(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("WIGGUM_AGENT_CMD", "definitely-not-installed")

        assert main([str(tmp_path / "missing.json"), "1"]) == 1
        assert "Missing PRD" in capsys.readouterr().err

    def test_zero_iterations_rejected(self, chain_prd, capsys):
        assert main([str(chain_prd), "0"]) == 1
        assert "Invalid settings" in capsys.readouterr().err

    def test_short_verbose_flag_stacks_to_debug(self, chain_prd, monkeypatch):
        monkeypatch.setattr("wiggum.loop.run_loop", lambda settings: 0)

        assert main([str(chain_prd), "1", "-VV"]) == 0
        assert logging.getLogger("wiggum").level == logging.DEBUG
