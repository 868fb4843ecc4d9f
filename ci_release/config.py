"""
Script: ci_release/config.py
What: Collects workflow inputs from environment variables.
Doing: Reads env values once, applies defaults, and returns one frozen config object.
Why: Commands share the same input names and defaults instead of re-reading env ad hoc.
Goal: Keep the workflow env contract documented in one place.
"""

from __future__ import annotations

from dataclasses import dataclass

from ci_release.common import env_flag, optional_env, require_env
from ci_release.matrix import DEFAULT_CHANNELS, parse_channels
from ci_release.refs import DEFAULT_PRIMARY_BRANCH


@dataclass(frozen=True)
class PipelineConfig:
    pipeline_name: str
    source_ref: str
    pr_number: str
    primary_branch: str
    channels: tuple[str, ...]
    install_toolchain: bool
    image_name: str
    registry: str
    registry_username: str
    registry_token: str
    build_context: str


def load_channels() -> tuple[str, ...]:
    """
    Channels for this run.

    `MATRIX_CHANNEL` selects one leg (one GitHub matrix job per channel);
    otherwise `TOOLCHAIN_CHANNELS` lists all of them, comma separated.
    """
    single = optional_env("MATRIX_CHANNEL").strip()
    if single:
        return (single,)
    configured = parse_channels(optional_env("TOOLCHAIN_CHANNELS"))
    return tuple(configured) if configured else DEFAULT_CHANNELS


def load_pipeline_name() -> str:
    # GitHub sets `GITHUB_WORKFLOW` to the workflow `name:`.
    return optional_env("PIPELINE_NAME") or require_env("GITHUB_WORKFLOW")


def load_pipeline_config(*, require_image: bool = True) -> PipelineConfig:
    return PipelineConfig(
        pipeline_name=load_pipeline_name(),
        source_ref=require_env("GITHUB_REF"),
        pr_number=optional_env("PR_NUMBER").strip(),
        primary_branch=optional_env("PRIMARY_BRANCH") or DEFAULT_PRIMARY_BRANCH,
        channels=load_channels(),
        install_toolchain=env_flag("INSTALL_TOOLCHAIN"),
        image_name=require_env("IMAGE_NAME") if require_image else optional_env("IMAGE_NAME"),
        registry=optional_env("REGISTRY"),
        # Credentials are only checked at login time, so non-publishing refs run without them.
        registry_username=optional_env("DOCKERHUB_USERNAME"),
        registry_token=optional_env("DOCKERHUB_TOKEN"),
        build_context=optional_env("BUILD_CONTEXT", "."),
    )
