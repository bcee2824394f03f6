#!/usr/bin/env python3
"""
WIGGUM - Agent Loop
===================
Repeatedly hands the PRD backlog to an external coding agent, which
completes exactly one task per run. The loop waits for each agent run
to exit before starting the next and stops when the agent reports that
nothing is left, or after a fixed number of iterations.

Usage:
    wiggum                       Default PRD, 10 iterations
    wiggum ./my-prd.json         Custom PRD
    wiggum ./my-prd.json 20      Custom PRD, 20 iterations
    wiggum 20                    Default PRD, 20 iterations
"""

import argparse
import logging
import subprocess
import sys
import textwrap
import time
from typing import Callable, List, Optional

from pydantic import ValidationError

from . import __version__
from .cli import render_overview
from .config import LoopSettings, resolve_prd_path
from .log import setup_logging, level_for_verbosity
from .manager import TaskManager
from .repository import PrdRepository, PrdError
from .schema import AGENT_COMPLETED_BY

logger = logging.getLogger("wiggum.loop")

COMPLETE_MARKER = "<promise>COMPLETE</promise>"

AgentRunner = Callable[[List[str]], str]


class AgentError(Exception):
    """Raised when the agent command cannot be run or exits non-zero."""


def run_agent(command: List[str]) -> str:
    """Run the agent to completion and return its stdout"""
    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise AgentError(f"Agent command not found: {command[0]}") from e

    if result.returncode != 0:
        raise AgentError(f"Agent exited with code {result.returncode}")
    return result.stdout or ""


PROMPT_TEMPLATE = textwrap.dedent("""\
    Context: @{progress}

    Tasks:
    {tasks}

    CRITICAL: You are in an automated loop. Complete exactly ONE task, then STOP. Do NOT check for more work. Do NOT continue to next task. Let the loop restart you in a fresh session.

    Task:
    1. Choose highest priority task from the available tasks list.
    2. If it is environment setup, perform it now (install deps, config files).
    3. For any feature, verify it with the project's type checker and test suite.
    4. If successful:
       - Mark the task as complete by running 'task complete <id> --prd {prd}'
         (if you edit the PRD directly, set 'completedBy' to '{completed_by}').
       - Record details in {progress}.
       - Create a git commit.
       - STOP HERE. Do not check for tasks again. Do not look for next task.
    5. If there are no available tasks to work on, respond with: {marker}.

    After completing one task, simply report completion with a brief summary. Do not check for tasks again. Do not check for next task. The loop will call you again.
    """)


def build_prompt(tasks_output: str, settings: LoopSettings) -> str:
    return PROMPT_TEMPLATE.format(
        progress=settings.progress_path,
        prd=settings.prd_path,
        tasks=tasks_output,
        completed_by=AGENT_COMPLETED_BY,
        marker=COMPLETE_MARKER,
    )


def run_loop(
    settings: LoopSettings,
    runner: Optional[AgentRunner] = None,
    sleep: Callable[[float], None] = time.sleep
) -> int:
    """Run up to settings.max_iterations agent sessions; returns the number run"""
    runner = runner or run_agent
    repository = PrdRepository(settings.prd_path)
    manager = TaskManager(repository)

    print("🚀 Wiggum loop: starting agent iterations")

    for i in range(1, settings.max_iterations + 1):
        print(f"\n--- Iteration {i} ---")

        if not repository.exists():
            raise AgentError(f"Missing PRD at {settings.prd_path}")

        prompt = build_prompt(render_overview(manager), settings)
        logger.debug(f"Agent prompt:\n{prompt}")

        output = runner(settings.agent_command + [prompt])
        print(output)

        if COMPLETE_MARKER in output:
            print("✅ PRD fully implemented.")
            return i

        if i < settings.max_iterations:
            sleep(settings.pause_seconds)

    logger.warning(f"Reached iteration limit ({settings.max_iterations}) with work remaining")
    return settings.max_iterations


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wiggum",
        description="Wiggum - Automated task completion with an external coding agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  wiggum                        Run with default settings
  wiggum ./my-prd.json          Use custom PRD file
  wiggum ./my-prd.json 20       Run with 20 max iterations
  wiggum 20                     Use default PRD, 20 iterations

Environment:
  PRD_PATH                Default PRD location (./plans/prd.json otherwise)
  WIGGUM_AGENT_CMD        Agent command, prompt is appended as last argument
  WIGGUM_MAX_ITERATIONS   Default iteration cap
  Creates/updates progress.txt in the current directory
        """
    )
    parser.add_argument("prd_path", nargs="?", help="Path to prd.json")
    parser.add_argument("max_iterations", nargs="?", type=int, help="Maximum iterations (default: 10)")
    parser.add_argument("-v", "--version", action="version", version=f"wiggum {__version__}")
    parser.add_argument("-V", "--verbose", action="count", default=0, help="Log loop activity (-VV for debug)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level_for_verbosity(args.verbose))

    prd_arg, max_iterations = args.prd_path, args.max_iterations
    if prd_arg and prd_arg.isdigit() and max_iterations is None:
        prd_arg, max_iterations = None, int(prd_arg)

    try:
        settings = LoopSettings.from_env(
            prd_path=resolve_prd_path(prd_arg),
            max_iterations=max_iterations,
        )
        run_loop(settings)
    except (AgentError, PrdError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"❌ Invalid settings: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
