"""
Script: ci_release/refs.py
What: Classifies the git reference that triggered a workflow run.
Doing: Maps a full ref to exactly one of release tag, primary branch, or other.
Why: Publishing depends on this answer, so it must be one explicit, total decision.
Goal: Never raise on odd input; anything unexpected becomes `Other` and is never pushed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

DEFAULT_PRIMARY_BRANCH = "refs/heads/master"

# Same shape as the workflow tag filter `v*.*.*`; `*` never crosses a `/` or whitespace.
RELEASE_TAG_REF_RE = re.compile(r"refs/tags/(v[^/\s]*\.[^/\s]*\.[^/\s]*)")

BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"


@dataclass(frozen=True)
class ReleaseTag:
    tag_name: str
    kind = "release_tag"


@dataclass(frozen=True)
class PrimaryBranch:
    kind = "primary_branch"


@dataclass(frozen=True)
class Other:
    kind = "other"


RefClassification = Union[ReleaseTag, PrimaryBranch, Other]


def classify(ref: str, primary_branch: str = DEFAULT_PRIMARY_BRANCH) -> RefClassification:
    """
    Classify one full git ref.

    Examples:
    - `refs/tags/v1.2.3` -> `ReleaseTag("v1.2.3")`
    - `refs/heads/master` -> `PrimaryBranch()`
    - `refs/heads/feature-x`, `refs/tags/v1`, `""` -> `Other()`
    """
    match = RELEASE_TAG_REF_RE.fullmatch(ref)
    if match:
        return ReleaseTag(match.group(1))
    if primary_branch and ref == primary_branch:
        return PrimaryBranch()
    return Other()


def short_ref_name(ref: str) -> str:
    """Return the branch or tag name without its `refs/...` prefix."""
    for prefix in (BRANCH_PREFIX, TAG_PREFIX):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref
