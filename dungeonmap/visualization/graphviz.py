"""Locate and invoke the Graphviz command line tools."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Sequence

__all__ = ["COMMON_PATHS", "DEFAULT_TIMEOUT", "GraphvizError", "find_graphviz_command", "run_graphviz"]

log = logging.getLogger(__name__)

COMMON_PATHS: tuple[str, ...] = (
    "/usr/bin",
    "/usr/local/bin",
    "/opt/homebrew/bin",
    "/opt/local/bin",
)

DEFAULT_TIMEOUT = 10.0


class GraphvizError(RuntimeError):
    """Raised when a Graphviz tool is missing, times out or fails."""


def find_graphviz_command(command: str) -> str:
    """Return the full path of ``command`` or the bare name as a last resort."""

    for directory in COMMON_PATHS:
        candidate = Path(directory) / command
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    found = shutil.which(command)
    if found:
        return found
    return command


def _subprocess_env() -> Dict[str, str]:
    env = dict(os.environ)
    entries = [entry for entry in env.get("PATH", "").split(os.pathsep) if entry]
    for directory in COMMON_PATHS:
        if directory not in entries:
            entries.append(directory)
    env["PATH"] = os.pathsep.join(entries)
    return env


def run_graphviz(
    engine: str,
    dot_text: str,
    output_format: str,
    *,
    extra_args: Sequence[str] = (),
    timeout: float = DEFAULT_TIMEOUT,
) -> bytes:
    """Run ``engine`` over ``dot_text`` and return its standard output."""

    command = [find_graphviz_command(engine), f"-T{output_format}", *extra_args]
    log.debug("Running %s", " ".join(command))
    try:
        completed = subprocess.run(
            command,
            input=dot_text.encode("utf-8"),
            capture_output=True,
            timeout=timeout,
            env=_subprocess_env(),
            check=False,
        )
    except FileNotFoundError as exc:
        raise GraphvizError(f"Graphviz '{engine}' is not installed") from exc
    except subprocess.TimeoutExpired as exc:
        raise GraphvizError(f"Graphviz '{engine}' timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise GraphvizError(f"Graphviz '{engine}' could not be started: {exc}") from exc

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise GraphvizError(
            f"Graphviz '{engine}' exited with status {completed.returncode}: {stderr}"
        )
    if not completed.stdout:
        raise GraphvizError(f"Graphviz '{engine}' produced no output")
    return completed.stdout
