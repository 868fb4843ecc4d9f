"""
Script: ci_release/run_pipeline.py
What: Runs the whole pipeline for one trigger: matrix, publish gate, and publish.
Doing: Builds the orchestrator from workflow env, runs it, writes outputs and `artifacts/pipeline-run.json`.
Why: Publish must strictly follow a green matrix, which is easiest to guarantee in one process.
Goal: Leave a clear terminal state and a per-run record for every trigger.

Refs that may not publish (feature branches, PRs) are not image-built here.
Add a `build-image` step to the workflow to validate the Dockerfile on those refs.
"""

from __future__ import annotations

import json
from pathlib import Path

from ci_release.common import CiToolError, bool_output, write_github_outputs
from ci_release.config import PipelineConfig, load_pipeline_config
from ci_release.matrix import MatrixRunner
from ci_release.orchestrator import PipelineOrchestrator, PipelineRun, RunState, run_record
from ci_release.publisher import DockerPublisher
from ci_release.run_matrix_leg import checks_for_run

ARTIFACT_DIR = Path("artifacts")
ARTIFACT_PATH = ARTIFACT_DIR / "pipeline-run.json"

FAILED_STATES = frozenset({RunState.FAILED, RunState.PUBLISH_FAILED, RunState.CANCELLED})


def build_orchestrator(config: PipelineConfig) -> PipelineOrchestrator:
    publisher = DockerPublisher(
        username=config.registry_username,
        token=config.registry_token,
        registry=config.registry,
        build_context=config.build_context,
    )
    return PipelineOrchestrator(
        pipeline_name=config.pipeline_name,
        channels=config.channels,
        matrix_runner=MatrixRunner(checks=checks_for_run(config.install_toolchain)),
        publisher=publisher,
        image_name=config.image_name,
        primary_branch=config.primary_branch,
    )


def write_run_record(run: PipelineRun, path: Path | None = None) -> Path:
    path = path or ARTIFACT_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(run_record(run), indent=2) + "\n", encoding="utf-8")
    return path


def main() -> None:
    config = load_pipeline_config()
    orchestrator = build_orchestrator(config)
    run = orchestrator.run(config.source_ref, config.pr_number or None)

    write_run_record(run)
    outputs = {"state": run.state.value, "push": "false", "image_tag": ""}
    if run.decision is not None:
        outputs.update(run.decision.as_outputs())
        # `push` reports what actually happened, not only what was allowed.
        outputs["push"] = bool_output(run.state is RunState.PUBLISHED)
    write_github_outputs(outputs)
    print(f"Pipeline run {run.key.group()} finished: {run.state.value}")

    if run.state in FAILED_STATES:
        detail = f": {run.error}" if run.error else ""
        raise CiToolError(f"Pipeline run ended in state {run.state.value}{detail}")


if __name__ == "__main__":
    main()
