from __future__ import annotations


def resolve_version(tag_name: str) -> str:
    """
    Turn a release tag name into the image version tag.

    Strips exactly one leading `v`, like `${TAG_NAME#v}` in shell.
    Semantic-version syntax is not checked: `v1.2.3` -> `1.2.3`, `1.2.3` stays as is.
    """
    if tag_name.startswith("v"):
        return tag_name[1:]
    return tag_name
