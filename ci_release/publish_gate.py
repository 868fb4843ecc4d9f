"""
Script: ci_release/publish_gate.py
What: Decides whether an image push is allowed and which tag it gets.
Doing: Maps a ref classification to a frozen `PublishDecision`.
Why: Keeps the push rule in one testable function instead of workflow `if:` strings.
Goal: Release tags push `<version>`, the primary branch pushes `latest`, everything else builds only.
"""

from __future__ import annotations

from dataclasses import dataclass

from ci_release.common import bool_output
from ci_release.refs import (
    DEFAULT_PRIMARY_BRANCH,
    PrimaryBranch,
    RefClassification,
    ReleaseTag,
    classify,
)
from ci_release.versioning import resolve_version

LATEST_TAG = "latest"


@dataclass(frozen=True)
class PublishDecision:
    allowed: bool
    image_tag: str

    def as_outputs(self) -> dict[str, str]:
        """Step outputs consumed by a `docker/build-push-action` style step."""
        return {"push": bool_output(self.allowed), "image_tag": self.image_tag}


def decide(classification: RefClassification) -> PublishDecision:
    if isinstance(classification, ReleaseTag):
        return PublishDecision(allowed=True, image_tag=resolve_version(classification.tag_name))
    if isinstance(classification, PrimaryBranch):
        return PublishDecision(allowed=True, image_tag=LATEST_TAG)
    # Other refs still build for validation, but are never pushed.
    return PublishDecision(allowed=False, image_tag=LATEST_TAG)


def decide_for_ref(ref: str, primary_branch: str = DEFAULT_PRIMARY_BRANCH) -> PublishDecision:
    """Classify `ref` and decide in one call."""
    return decide(classify(ref, primary_branch))
