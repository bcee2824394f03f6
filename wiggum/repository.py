"""
WIGGUM - PRD Repository
=======================
Loads and saves the whole PRD document as a unit. Every save replaces
the previous file content; there are no partial writes or merges.
"""

import json
import os
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .schema import Prd

logger = logging.getLogger("wiggum.repository")


class PrdError(Exception):
    """Base class for PRD storage failures."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class PrdNotFoundError(PrdError):
    """Raised when the PRD file does not exist."""


class PrdParseError(PrdError):
    """Raised when the PRD file is not valid JSON or not a valid PRD."""


class PrdReadError(PrdError):
    """Raised when the PRD file exists but cannot be read."""


class PrdWriteError(PrdError):
    """Raised when the PRD file cannot be written."""


class PrdRepository:
    """
    File-backed PRD storage.

    The path is supplied by the caller; see wiggum.config.resolve_prd_path
    for the --prd / PRD_PATH / plans/prd.json lookup used by the CLIs.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Prd:
        """Read and validate the PRD document."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise PrdNotFoundError(self.path, "PRD file not found") from e
        except (OSError, UnicodeDecodeError) as e:
            raise PrdReadError(self.path, f"Cannot read PRD file ({e})") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PrdParseError(self.path, f"Invalid JSON at line {e.lineno}") from e

        try:
            prd = Prd.model_validate(data)
        except ValidationError as e:
            raise PrdParseError(
                self.path, f"Invalid PRD document ({e.error_count()} errors)"
            ) from e

        logger.debug(f"📂 Loaded PRD: {prd.project} ({len(prd.backlog)} tasks)")
        return prd

    def save(self, prd: Prd) -> None:
        """Persist the full document (temp file + rename, UTF-8, indent=2)."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(prd.to_json_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PrdWriteError(self.path, f"Cannot write PRD file ({e})") from e

        logger.debug(f"💾 Saved PRD: {prd.project} ({len(prd.backlog)} tasks)")

    def init(self, project: str) -> Prd:
        """Create an empty PRD; never overwrites an existing file."""
        if self.path.exists():
            raise PrdWriteError(self.path, "PRD file already exists")
        prd = Prd(project=project)
        self.save(prd)
        logger.info(f"🚀 Created PRD: {project}")
        return prd
