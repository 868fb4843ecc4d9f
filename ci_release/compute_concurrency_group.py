from __future__ import annotations

from ci_release.common import optional_env, require_env, write_github_outputs
from ci_release.config import load_pipeline_name
from ci_release.orchestrator import ConcurrencyKey


def main() -> None:
    # PR runs share one group per PR number; pushes share one group per ref.
    key = ConcurrencyKey.for_trigger(
        load_pipeline_name(),
        require_env("GITHUB_REF"),
        optional_env("PR_NUMBER").strip() or None,
    )
    write_github_outputs({"group": key.group()})
    print(f"Concurrency group: {key.group()}")


if __name__ == "__main__":
    main()
