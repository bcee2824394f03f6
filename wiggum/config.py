"""Path and loop configuration for the task and wiggum commands."""

import os
import shlex
from pathlib import Path
from typing import List, Mapping, Optional, Union

from pydantic import BaseModel, Field

DEFAULT_PRD_PATH = "plans/prd.json"
DEFAULT_PROGRESS_PATH = "progress.txt"
DEFAULT_AGENT_COMMAND = ["opencode", "run", "-m", "opencode/glm-4.7-free"]
DEFAULT_MAX_ITERATIONS = 10

PRD_PATH_ENV = "PRD_PATH"
AGENT_CMD_ENV = "WIGGUM_AGENT_CMD"
MAX_ITERATIONS_ENV = "WIGGUM_MAX_ITERATIONS"


def resolve_prd_path(
    explicit: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> Path:
    """Explicit argument, then $PRD_PATH, then ./plans/prd.json."""
    if explicit:
        return Path(explicit).expanduser()

    env = os.environ if environ is None else environ
    env_path = env.get(PRD_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()

    return Path(DEFAULT_PRD_PATH)


class LoopSettings(BaseModel):
    """Settings for one run of the agent loop"""
    prd_path: Path = Field(default_factory=lambda: Path(DEFAULT_PRD_PATH))
    progress_path: Path = Field(default_factory=lambda: Path.cwd() / DEFAULT_PROGRESS_PATH)
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    agent_command: List[str] = Field(default_factory=lambda: list(DEFAULT_AGENT_COMMAND))
    pause_seconds: float = Field(default=1.0, ge=0)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides
    ) -> "LoopSettings":
        env = os.environ if environ is None else environ
        values = {}

        agent_cmd = env.get(AGENT_CMD_ENV)
        if agent_cmd:
            values["agent_command"] = shlex.split(agent_cmd)

        max_iterations = env.get(MAX_ITERATIONS_ENV)
        if max_iterations:
            values["max_iterations"] = max_iterations

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
