"""
Script: ci_release/matrix.py
What: Runs the per-toolchain build/test/format/lint matrix.
Doing: Runs one independent leg per channel in parallel; each leg stops at its first failing check.
Why: One Python entry point replaces the copy-pasted cargo steps of each matrix job.
Goal: Report one pass/fail result per channel and an overall status that is green only if all legs are.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

from ci_release.common import CiToolError, LegFailure, run_cmd

DEFAULT_CHANNELS = ("stable", "beta", "nightly", "1.64.0")
CANCELLED_REASON = "cancelled"


@dataclass(frozen=True)
class Check:
    """
    One external check command.

    `{toolchain}` inside `args` is replaced by the leg's channel name.
    """

    name: str
    args: tuple[str, ...]

    def command_for(self, channel: str) -> list[str]:
        return [arg.replace("{toolchain}", channel) for arg in self.args]


TOOLCHAIN_CHECK = Check(
    "toolchain",
    (
        "rustup",
        "toolchain",
        "install",
        "{toolchain}",
        "--profile",
        "minimal",
        "--component",
        "rustfmt",
        "--component",
        "clippy",
    ),
)

DEFAULT_CHECKS = (
    Check("build", ("cargo", "+{toolchain}", "build")),
    Check("test", ("cargo", "+{toolchain}", "test")),
    Check("fmt", ("cargo", "+{toolchain}", "fmt", "--all", "--", "--check")),
    # Warnings are errors for lint.
    Check("clippy", ("cargo", "+{toolchain}", "clippy", "--", "-D", "warnings")),
)


@dataclass(frozen=True)
class LegResult:
    channel: str
    success: bool
    reason: str = ""
    failed_check: str = ""
    checks_run: tuple[str, ...] = field(default_factory=tuple)

    def as_record(self) -> dict:
        return {
            "channel": self.channel,
            "success": self.success,
            "reason": self.reason,
            "failed_check": self.failed_check,
            "checks_run": list(self.checks_run),
        }


CheckRunner = Callable[[str, Check], None]


def command_check_runner(channel: str, check: Check, *, cwd: str | None = None) -> None:
    """Default check runner: execute the check command, stream its output to the log."""
    try:
        run_cmd(check.command_for(channel), capture_output=False, cwd=cwd)
    except CiToolError as exc:
        raise LegFailure(f"{check.name} failed on {channel}: {exc}") from exc


def parse_channels(value: str) -> list[str]:
    """Parse `stable, beta,nightly` into an ordered list without blanks or duplicates."""
    channels: list[str] = []
    for item in value.split(","):
        channel = item.strip()
        if channel and channel not in channels:
            channels.append(channel)
    return channels


def build_succeeded(results: Mapping[str, LegResult]) -> bool:
    """True only when every leg passed."""
    return all(result.success for result in results.values())


class MatrixRunner:
    def __init__(
        self,
        check_runner: CheckRunner = command_check_runner,
        checks: Sequence[Check] = DEFAULT_CHECKS,
    ) -> None:
        self.check_runner = check_runner
        self.checks = tuple(checks)

    def run_leg(self, channel: str, cancel_event: threading.Event | None = None) -> LegResult:
        """Run all checks for one channel, stopping at the first failure."""
        checks_run: list[str] = []
        for check in self.checks:
            if cancel_event is not None and cancel_event.is_set():
                return LegResult(channel, False, CANCELLED_REASON, "", tuple(checks_run))
            checks_run.append(check.name)
            try:
                self.check_runner(channel, check)
            except CiToolError as exc:
                print(f"Leg {channel}: {check.name} failed")
                return LegResult(channel, False, str(exc), check.name, tuple(checks_run))
            print(f"Leg {channel}: {check.name} passed")
        return LegResult(channel, True, checks_run=tuple(checks_run))

    def run(
        self,
        channels: Sequence[str],
        cancel_event: threading.Event | None = None,
    ) -> dict[str, LegResult]:
        """
        Run every leg in parallel and wait for all of them.

        The returned dict keeps the configured channel order.
        """
        if not channels:
            return {}

        with ThreadPoolExecutor(max_workers=len(channels), thread_name_prefix="leg") as pool:
            futures = {channel: pool.submit(self.run_leg, channel, cancel_event) for channel in channels}
            # Blocks until every leg has reported.
            return {channel: future.result() for channel, future in futures.items()}
