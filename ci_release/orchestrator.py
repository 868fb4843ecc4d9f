"""
Script: ci_release/orchestrator.py
What: Drives one pipeline run from trigger to a terminal state.
Doing: Cancels older runs with the same concurrency key, runs the matrix, then gates and runs publish.
Why: Publish must never race the matrix, and only the newest run per key may finish.
Goal: Every run ends in exactly one of succeeded, failed, published, publish_failed, or cancelled.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from ci_release.common import CiToolError
from ci_release.matrix import LegResult, MatrixRunner, build_succeeded
from ci_release.publish_gate import PublishDecision, decide
from ci_release.publisher import image_reference
from ci_release.refs import DEFAULT_PRIMARY_BRANCH, classify


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"
    CANCELLED = "cancelled"


# `succeeded` ends a run only for build-only decisions (see `finish=`).
TERMINAL_STATES = frozenset(
    {RunState.FAILED, RunState.PUBLISHED, RunState.PUBLISH_FAILED, RunState.CANCELLED}
)


@dataclass(frozen=True)
class ConcurrencyKey:
    pipeline: str
    scope: str

    @classmethod
    def for_trigger(cls, pipeline: str, source_ref: str, pr_number: str | None = None) -> ConcurrencyKey:
        """PR number wins over the ref, same as `pull_request.number || github.ref`."""
        return cls(pipeline, pr_number or source_ref)

    def group(self) -> str:
        return f"{self.pipeline}-{self.scope}"


@dataclass
class PipelineRun:
    key: ConcurrencyKey
    source_ref: str
    state: RunState = RunState.PENDING
    leg_results: dict[str, LegResult] = field(default_factory=dict)
    decision: PublishDecision | None = None
    error: str = ""
    finished: bool = False
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def transition(self, new_state: RunState, *, finish: bool = False) -> bool:
        """
        Move to `new_state` unless the run already ended.

        Returns False when the move was refused, which only happens after cancellation
        or after a terminal state was reached.
        """
        with self._lock:
            if self.finished:
                return False
            self.state = new_state
            self.finished = finish or new_state in TERMINAL_STATES
            return True

    def cancel(self) -> bool:
        # Cooperative: in-flight work sees the event and stops at its next check.
        self.cancel_event.set()
        return self.transition(RunState.CANCELLED)


class PipelineOrchestrator:
    def __init__(
        self,
        *,
        pipeline_name: str,
        channels: Sequence[str],
        matrix_runner: MatrixRunner,
        publisher,
        image_name: str,
        primary_branch: str = DEFAULT_PRIMARY_BRANCH,
    ) -> None:
        self.pipeline_name = pipeline_name
        self.channels = tuple(channels)
        self.matrix_runner = matrix_runner
        self.publisher = publisher
        self.image_name = image_name
        self.primary_branch = primary_branch
        self._active: dict[ConcurrencyKey, PipelineRun] = {}
        self._registry_lock = threading.Lock()

    def trigger(self, source_ref: str, pr_number: str | None = None) -> PipelineRun:
        key = ConcurrencyKey.for_trigger(self.pipeline_name, source_ref, pr_number)
        return PipelineRun(key=key, source_ref=source_ref)

    def active_run(self, key: ConcurrencyKey) -> PipelineRun | None:
        with self._registry_lock:
            return self._active.get(key)

    def _start(self, run: PipelineRun) -> bool:
        # Register and cancel under one lock so two triggers cannot both survive.
        with self._registry_lock:
            previous = self._active.get(run.key)
            if previous is not None and previous is not run and not previous.finished:
                if previous.cancel():
                    print(f"Cancelled run {run.key.group()} superseded by newer trigger")
            self._active[run.key] = run
            return run.transition(RunState.RUNNING)

    def _release(self, run: PipelineRun) -> None:
        # Finished runs leave the registry unless a newer run already took the key.
        with self._registry_lock:
            if run.finished and self._active.get(run.key) is run:
                del self._active[run.key]

    def execute(self, run: PipelineRun) -> PipelineRun:
        if not self._start(run):
            return run

        try:
            self._drive(run)
        except Exception as exc:
            # Unexpected errors still end the run before they propagate.
            run.error = run.error or f"{type(exc).__name__}: {exc}"
            failed_state = RunState.PUBLISH_FAILED if run.state is RunState.PUBLISHING else RunState.FAILED
            run.transition(failed_state, finish=True)
            raise
        finally:
            self._release(run)
        return run

    def _drive(self, run: PipelineRun) -> None:
        print(f"Running matrix for {run.source_ref}: {', '.join(self.channels)}")
        results = self.matrix_runner.run(self.channels, run.cancel_event)
        if run.cancelled:
            # Results of a superseded run are discarded.
            return
        run.leg_results = results

        if not build_succeeded(results):
            failed = [channel for channel, result in results.items() if not result.success]
            run.transition(RunState.FAILED)
            print(f"Matrix failed on: {', '.join(failed)}; publish skipped")
            return

        decision = decide(classify(run.source_ref, self.primary_branch))
        run.decision = decision
        print(f"Publish decision: push={str(decision.allowed).lower()} image_tag={decision.image_tag}")
        if not decision.allowed:
            run.transition(RunState.SUCCEEDED, finish=True)
            return

        if run.transition(RunState.SUCCEEDED):
            self._publish(run, decision)

    def _publish(self, run: PipelineRun, decision: PublishDecision) -> None:
        if not run.transition(RunState.PUBLISHING):
            return

        image_ref = image_reference(self.image_name, decision.image_tag)
        try:
            if run.cancelled:
                return
            self.publisher.login()
            if run.cancelled:
                return
            self.publisher.build_and_push(image_ref)
        except CiToolError as exc:
            # No automatic retry; a new trigger is the recovery path.
            run.error = str(exc)
            run.transition(RunState.PUBLISH_FAILED)
            print(f"Publish failed for {image_ref}: {exc}")
            return

        if run.transition(RunState.PUBLISHED):
            print(f"Published {image_ref}")

    def run(self, source_ref: str, pr_number: str | None = None) -> PipelineRun:
        return self.execute(self.trigger(source_ref, pr_number))


def run_record(run: PipelineRun) -> dict:
    """JSON-ready summary of a finished run."""
    return {
        "schema_version": 1,
        "concurrency_group": run.key.group(),
        "source_ref": run.source_ref,
        "state": run.state.value,
        "legs": [result.as_record() for result in run.leg_results.values()],
        "publish": (
            {"allowed": run.decision.allowed, "image_tag": run.decision.image_tag}
            if run.decision is not None
            else None
        ),
        "error": run.error,
    }
