"""
Script: ci_release/build_image.py
What: Builds the container image for the current ref without pushing it.
Doing: Computes the publish decision tag and runs `docker build` only.
Why: Feature branches still validate the Dockerfile even though they never publish.
Goal: Catch broken image builds before they reach the primary branch.
"""

from __future__ import annotations

from ci_release.common import optional_env, require_env
from ci_release.publish_gate import decide_for_ref
from ci_release.publisher import DockerPublisher, image_reference
from ci_release.refs import DEFAULT_PRIMARY_BRANCH


def main() -> None:
    ref = require_env("GITHUB_REF")
    image_name = require_env("IMAGE_NAME")
    decision = decide_for_ref(ref, optional_env("PRIMARY_BRANCH") or DEFAULT_PRIMARY_BRANCH)

    # Build-only never logs in, so no credentials are passed.
    publisher = DockerPublisher(
        username="",
        token="",
        build_context=optional_env("BUILD_CONTEXT", "."),
    )
    publisher.build(image_reference(image_name, decision.image_tag))


if __name__ == "__main__":
    main()
