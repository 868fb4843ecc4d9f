"""
Script: ci_release package
What: Holds the Python helpers behind the build matrix and image release workflows.
Doing: Groups CLI entrypoints, the ref/publish decision logic, and shared utility code in one importable package.
Why: Keeps release gating readable and testable instead of spreading it across workflow `if:` expressions.
Goal: Provide one tested home for "which tag, and may we push it".
"""
