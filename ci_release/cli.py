from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Mapping

from ci_release.common import CiToolError


def command_map() -> dict[str, Callable[[], None]]:
    """
    Map CLI command names to Python entry functions.

    Each value is a `main()` function from one workflow helper module.
    """
    from ci_release.build_image import main as build_image
    from ci_release.compute_concurrency_group import main as compute_concurrency_group
    from ci_release.compute_publish_decision import main as compute_publish_decision
    from ci_release.run_matrix_leg import main as run_matrix_leg
    from ci_release.run_pipeline import main as run_pipeline

    return {
        "compute-publish-decision": compute_publish_decision,
        "compute-concurrency-group": compute_concurrency_group,
        "run-matrix-leg": run_matrix_leg,
        "build-image": build_image,
        "run-pipeline": run_pipeline,
    }


def build_parser(commands: Mapping[str, Callable[[], None]]) -> argparse.ArgumentParser:
    """Build argument parser with one positional command choice."""
    parser = argparse.ArgumentParser(
        prog="python3 -m ci_release.cli",
        description="Run one release workflow helper command.",
    )
    parser.add_argument("command", choices=sorted(commands.keys()))
    return parser


def run_command(command: str, commands: Mapping[str, Callable[[], None]]) -> None:
    """
    Run one registered command.

    `commands` is passed in to keep this function easy to test.
    """
    commands[command]()


def main(argv: list[str] | None = None) -> None:
    # Build command registry once so parser and dispatcher use the same keys.
    commands = command_map()
    parser = build_parser(commands)
    args = parser.parse_args(argv)

    try:
        run_command(args.command, commands)
    except CiToolError as exc:
        # Keep failures short and readable in workflow logs.
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
