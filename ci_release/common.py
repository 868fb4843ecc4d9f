"""
Script: ci_release/common.py
What: Shared helper functions used by all `ci_release` modules.
Doing: Wraps env reads, command execution, error types, and GitHub output/env file writes.
Why: Avoids duplicated helper code.
Goal: Keep behavior consistent across all helper modules.
"""

from __future__ import annotations

import os
import subprocess
from typing import Mapping, Sequence


class CiToolError(RuntimeError):
    """Raised when a workflow helper script hits a known error condition."""


class LegFailure(CiToolError):
    """Raised when one compile/test/format/lint check fails for a toolchain channel."""


class PublishAuthFailure(CiToolError):
    """Raised when registry login fails or credentials are missing."""


class PublishTransportFailure(CiToolError):
    """Raised when the image build or push against the registry fails."""


def require_env(name: str) -> str:
    """Return a required environment variable or raise a clear error."""
    value = os.environ.get(name)
    if value is None or value == "":
        raise CiToolError(f"Missing required environment variable: {name}")
    return value


def optional_env(name: str, default: str = "") -> str:
    """Return an environment variable with a fallback default."""
    return os.environ.get(name, default)


def env_flag(name: str, default: bool = False) -> bool:
    """Read a `true`/`false` workflow input from the environment."""
    value = optional_env(name).strip().lower()
    if not value:
        return default
    return value == "true"


def run_cmd(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    cwd: str | None = None,
    input_text: str | None = None,
) -> str:
    """Run a command and return stdout, raising a readable error on failure."""
    try:
        result = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
            cwd=cwd,
            input=input_text,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        details = stderr or stdout or str(exc)
        raise CiToolError(f"Command failed: {' '.join(args)}\n{details}") from exc
    except OSError as exc:
        # Missing executable, permission denied, and similar launch errors.
        raise CiToolError(f"Could not run command: {args[0]}: {exc}") from exc

    if not capture_output:
        return ""
    return result.stdout


def _append_lines(file_path: str, values: Mapping[str, str]) -> None:
    with open(file_path, "a", encoding="utf-8") as handle:
        for key, value in values.items():
            handle.write(f"{key}={value}\n")


def write_github_outputs(values: Mapping[str, str]) -> None:
    """
    Write step outputs for GitHub Actions.

    GitHub provides a file path in `GITHUB_OUTPUT`; writing `name=value` lines
    there makes that value available to later steps in the same job.
    """
    _append_lines(require_env("GITHUB_OUTPUT"), values)


def write_github_env(values: Mapping[str, str]) -> None:
    """
    Export environment variables to later steps through `GITHUB_ENV`.

    Unlike step outputs this is optional: outside GitHub Actions nothing is written.
    """
    env_file = optional_env("GITHUB_ENV")
    if not env_file:
        return
    _append_lines(env_file, values)


def bool_output(value: bool) -> str:
    """Render a boolean the way workflow `if:` expressions compare it."""
    return "true" if value else "false"
