"""
Script: ci_release/compute_publish_decision.py
What: Computes the image tag and push permission for the triggering ref.
Doing: Classifies `GITHUB_REF`, runs the publish gate, and writes outputs for downstream steps.
Why: Replaces `if: github.ref == ...` checks and the `${TAG_NAME#v}` shell step with one tested rule.
Goal: Give the docker step a `push` flag and an `image_tag` it can use as-is.
"""

from __future__ import annotations

from ci_release.common import optional_env, require_env, write_github_env, write_github_outputs
from ci_release.publish_gate import PublishDecision, decide
from ci_release.refs import DEFAULT_PRIMARY_BRANCH, ReleaseTag, classify, short_ref_name


def build_decision_outputs(ref: str, primary_branch: str) -> tuple[PublishDecision, dict[str, str]]:
    """
    Return the decision plus every step output derived from it.

    `version` is only set for release tags; branches leave it empty.
    """
    classification = classify(ref, primary_branch)
    decision = decide(classification)
    outputs = {"ref_kind": classification.kind, **decision.as_outputs()}
    outputs["version"] = decision.image_tag if isinstance(classification, ReleaseTag) else ""
    return decision, outputs


def main() -> None:
    # GitHub sets this to the full ref, for example `refs/tags/v1.2.3`.
    ref = require_env("GITHUB_REF")
    primary_branch = optional_env("PRIMARY_BRANCH") or DEFAULT_PRIMARY_BRANCH

    decision, outputs = build_decision_outputs(ref, primary_branch)
    write_github_outputs(outputs)
    # Same env name the release job used before, so existing steps keep working.
    write_github_env({"DOCKER_IMAGE_VERSION": decision.image_tag})

    print(f"Source ref: {short_ref_name(ref)} ({outputs['ref_kind']})")
    print(f"Publish decision: push={outputs['push']} image_tag={decision.image_tag}")


if __name__ == "__main__":
    main()
