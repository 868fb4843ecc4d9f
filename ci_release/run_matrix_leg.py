"""
Script: ci_release/run_matrix_leg.py
What: Runs the build/test/fmt/clippy checks for one or more toolchain channels.
Doing: Optionally installs each toolchain, runs the checks per leg, prints a summary, and writes `success`.
Why: Keeps the matrix step list identical for every channel.
Goal: Fail the job when any leg fails, with the failing check named in the log.
"""

from __future__ import annotations

from typing import Mapping

from ci_release.common import CiToolError, bool_output, env_flag, write_github_outputs
from ci_release.config import load_channels
from ci_release.matrix import (
    DEFAULT_CHECKS,
    TOOLCHAIN_CHECK,
    Check,
    LegResult,
    MatrixRunner,
    build_succeeded,
)


def checks_for_run(install_toolchain: bool) -> tuple[Check, ...]:
    if install_toolchain:
        return (TOOLCHAIN_CHECK, *DEFAULT_CHECKS)
    return DEFAULT_CHECKS


def summarize(results: Mapping[str, LegResult]) -> list[str]:
    """One log line per leg, in channel order."""
    lines = []
    for channel, result in results.items():
        if result.success:
            lines.append(f"{channel}: ok ({', '.join(result.checks_run)})")
        else:
            lines.append(f"{channel}: FAILED at {result.failed_check or 'start'}: {result.reason}")
    return lines


def main() -> None:
    channels = load_channels()
    runner = MatrixRunner(checks=checks_for_run(env_flag("INSTALL_TOOLCHAIN")))
    results = runner.run(channels)

    for line in summarize(results):
        print(line)

    success = build_succeeded(results)
    write_github_outputs({"success": bool_output(success)})
    if not success:
        failed = [channel for channel, result in results.items() if not result.success]
        raise CiToolError(f"Matrix failed for channels: {', '.join(failed)}")


if __name__ == "__main__":
    main()
