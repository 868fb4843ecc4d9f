"""
Script: ci_release/publisher.py
What: Logs in to the registry, builds the container image, and pushes it.
Doing: Wraps `docker login`, `docker build`, and `docker push` with typed failures.
Why: The orchestrator must tell auth failures from transport failures without parsing logs.
Goal: One publish attempt per call, never retried here.
"""

from __future__ import annotations

from ci_release.common import (
    CiToolError,
    PublishAuthFailure,
    PublishTransportFailure,
    run_cmd,
)


def image_reference(image_name: str, image_tag: str) -> str:
    """
    Build `<image>:<tag>`.

    Registries only accept lowercase repository paths, so the name is lowercased.
    Example: `AlexLiesenfeld/httpmock` + `1.2.3` -> `alexliesenfeld/httpmock:1.2.3`.
    """
    return f"{image_name.lower()}:{image_tag}"


class DockerPublisher:
    def __init__(
        self,
        *,
        username: str,
        token: str,
        registry: str = "",
        build_context: str = ".",
    ) -> None:
        self.username = username
        self.token = token
        self.registry = registry
        self.build_context = build_context

    def login(self) -> None:
        if not self.username or not self.token:
            raise PublishAuthFailure("Registry credentials are not configured")

        command = ["docker", "login"]
        if self.registry:
            command.append(self.registry)
        command.extend(["--username", self.username, "--password-stdin"])
        try:
            # Token goes through stdin so it never shows up in the process list.
            run_cmd(command, input_text=self.token)
        except CiToolError as exc:
            raise PublishAuthFailure(f"Registry login failed for {self.username}: {exc}") from exc
        print(f"Logged in to {self.registry or 'Docker Hub'} as {self.username}")

    def build(self, image_ref: str) -> None:
        """Build the image without pushing it."""
        try:
            run_cmd(
                ["docker", "build", "--tag", image_ref, self.build_context],
                capture_output=False,
            )
        except CiToolError as exc:
            raise PublishTransportFailure(f"Image build failed for {image_ref}: {exc}") from exc
        print(f"Built image {image_ref}")

    def build_and_push(self, image_ref: str) -> None:
        self.build(image_ref)
        try:
            run_cmd(["docker", "push", image_ref], capture_output=False)
        except CiToolError as exc:
            raise PublishTransportFailure(f"Image push failed for {image_ref}: {exc}") from exc
        print(f"Pushed image {image_ref}")
