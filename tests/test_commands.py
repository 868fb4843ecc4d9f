"""
Script: tests/test_commands.py
What: Tests the workflow command entrypoints end to end with a temp `GITHUB_OUTPUT`.
Doing: Sets workflow env values, calls each `main()`, and reads back the written outputs.
Why: Workflow YAML depends on these exact output names and values.
Goal: Keep the env/output contract of each command stable.
"""

from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ci_release import (
    build_image,
    compute_concurrency_group,
    compute_publish_decision,
    run_matrix_leg,
    run_pipeline,
)
from ci_release.common import CiToolError
from ci_release.config import load_channels, load_pipeline_config
from ci_release.matrix import DEFAULT_CHANNELS


def read_pairs(path: Path) -> dict[str, str]:
    pairs = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, _, value = line.partition("=")
        pairs[key] = value
    return pairs


class CommandTestCase(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.root = Path(temp_dir.name)
        self.output_file = self.root / "github_output"
        self.env_file = self.root / "github_env"

    def env(self, **values: str):
        base = {"GITHUB_OUTPUT": str(self.output_file), "GITHUB_ENV": str(self.env_file)}
        base.update(values)
        return mock.patch.dict(os.environ, base, clear=True)


class ComputePublishDecisionTests(CommandTestCase):
    def test_release_tag_outputs(self) -> None:
        with self.env(GITHUB_REF="refs/tags/v1.2.3"):
            compute_publish_decision.main()

        self.assertEqual(
            read_pairs(self.output_file),
            {"ref_kind": "release_tag", "push": "true", "image_tag": "1.2.3", "version": "1.2.3"},
        )
        self.assertEqual(read_pairs(self.env_file), {"DOCKER_IMAGE_VERSION": "1.2.3"})

    def test_feature_branch_is_build_only(self) -> None:
        with self.env(GITHUB_REF="refs/heads/feature-x"):
            compute_publish_decision.main()

        outputs = read_pairs(self.output_file)
        self.assertEqual(outputs["push"], "false")
        self.assertEqual(outputs["image_tag"], "latest")
        self.assertEqual(outputs["version"], "")

    def test_primary_branch_override(self) -> None:
        with self.env(GITHUB_REF="refs/heads/main", PRIMARY_BRANCH="refs/heads/main"):
            compute_publish_decision.main()
        self.assertEqual(read_pairs(self.output_file)["ref_kind"], "primary_branch")

    def test_missing_ref_is_reported(self) -> None:
        with self.env():
            with self.assertRaises(CiToolError):
                compute_publish_decision.main()


class ComputeConcurrencyGroupTests(CommandTestCase):
    def test_pr_number_wins(self) -> None:
        with self.env(GITHUB_WORKFLOW="Build", GITHUB_REF="refs/pull/9/merge", PR_NUMBER="9"):
            compute_concurrency_group.main()
        self.assertEqual(read_pairs(self.output_file), {"group": "Build-9"})

    def test_ref_used_without_pr(self) -> None:
        with self.env(PIPELINE_NAME="Docker", GITHUB_REF="refs/tags/v1.0.0"):
            compute_concurrency_group.main()
        self.assertEqual(read_pairs(self.output_file), {"group": "Docker-refs/tags/v1.0.0"})


class RunMatrixLegTests(CommandTestCase):
    def test_failed_leg_writes_output_and_raises(self) -> None:
        def fake_run_cmd(args, **_kwargs):
            if args[1] == "+nightly" and args[2] == "clippy":
                raise CiToolError("warning: unused variable")
            return ""

        with self.env(TOOLCHAIN_CHANNELS="stable,nightly"):
            with mock.patch("ci_release.matrix.run_cmd", side_effect=fake_run_cmd):
                with self.assertRaises(CiToolError) as ctx:
                    run_matrix_leg.main()

        self.assertIn("nightly", str(ctx.exception))
        self.assertEqual(read_pairs(self.output_file), {"success": "false"})

    def test_install_toolchain_adds_setup_check(self) -> None:
        with self.env(MATRIX_CHANNEL="beta", INSTALL_TOOLCHAIN="true"):
            with mock.patch("ci_release.matrix.run_cmd", return_value="") as run_cmd:
                run_matrix_leg.main()

        self.assertEqual(run_cmd.call_args_list[0].args[0][0], "rustup")
        self.assertEqual(run_cmd.call_count, 5)
        self.assertEqual(read_pairs(self.output_file), {"success": "true"})


class BuildImageTests(CommandTestCase):
    def test_builds_without_login_or_push(self) -> None:
        with self.env(GITHUB_REF="refs/heads/feature-x", IMAGE_NAME="AlexLiesenfeld/httpmock"):
            with mock.patch("ci_release.publisher.run_cmd") as run_cmd:
                build_image.main()

        run_cmd.assert_called_once_with(
            ["docker", "build", "--tag", "alexliesenfeld/httpmock:latest", "."],
            capture_output=False,
        )


class ConfigTests(CommandTestCase):
    def test_default_channels(self) -> None:
        with self.env():
            self.assertEqual(load_channels(), DEFAULT_CHANNELS)

    def test_single_matrix_channel(self) -> None:
        with self.env(MATRIX_CHANNEL="1.64.0", TOOLCHAIN_CHANNELS="stable,beta"):
            self.assertEqual(load_channels(), ("1.64.0",))

    def test_pipeline_config(self) -> None:
        with self.env(GITHUB_WORKFLOW="Build", GITHUB_REF="refs/heads/master", IMAGE_NAME="me/img"):
            config = load_pipeline_config()
        self.assertEqual(config.primary_branch, "refs/heads/master")
        self.assertEqual(config.build_context, ".")
        self.assertFalse(config.install_toolchain)
        self.assertEqual(config.registry_username, "")

    def test_image_name_is_required(self) -> None:
        with self.env(GITHUB_WORKFLOW="Build", GITHUB_REF="refs/heads/master"):
            with self.assertRaises(CiToolError):
                load_pipeline_config()


class RunPipelineTests(CommandTestCase):
    def test_feature_branch_run_writes_record_and_outputs(self) -> None:
        record_path = self.root / "artifacts" / "pipeline-run.json"
        with self.env(
            GITHUB_WORKFLOW="Build",
            GITHUB_REF="refs/heads/feature-x",
            IMAGE_NAME="alexliesenfeld/httpmock",
            TOOLCHAIN_CHANNELS="stable",
        ):
            with mock.patch("ci_release.matrix.run_cmd", return_value=""), mock.patch(
                "ci_release.publisher.run_cmd"
            ) as docker_cmd, mock.patch.object(run_pipeline, "ARTIFACT_PATH", record_path):
                run_pipeline.main()

        docker_cmd.assert_not_called()
        self.assertEqual(
            read_pairs(self.output_file),
            {"state": "succeeded", "push": "false", "image_tag": "latest"},
        )
        record = json.loads(record_path.read_text(encoding="utf-8"))
        self.assertEqual(record["state"], "succeeded")
        self.assertEqual(record["concurrency_group"], "Build-refs/heads/feature-x")

    def test_publish_without_credentials_fails_the_command(self) -> None:
        record_path = self.root / "pipeline-run.json"
        with self.env(
            GITHUB_WORKFLOW="Docker",
            GITHUB_REF="refs/tags/v1.2.3",
            IMAGE_NAME="alexliesenfeld/httpmock",
            TOOLCHAIN_CHANNELS="stable",
        ):
            with mock.patch("ci_release.matrix.run_cmd", return_value=""), mock.patch(
                "ci_release.publisher.run_cmd"
            ) as docker_cmd, mock.patch.object(run_pipeline, "ARTIFACT_PATH", record_path):
                with self.assertRaises(CiToolError) as ctx:
                    run_pipeline.main()

        # Missing credentials stop the publish before docker is called.
        docker_cmd.assert_not_called()
        self.assertIn("publish_failed", str(ctx.exception))
        outputs = read_pairs(self.output_file)
        self.assertEqual(outputs["state"], "publish_failed")
        self.assertEqual(outputs["push"], "false")
        self.assertEqual(outputs["image_tag"], "1.2.3")
        record = json.loads(record_path.read_text(encoding="utf-8"))
        self.assertEqual(record["error"], "Registry credentials are not configured")


if __name__ == "__main__":
    unittest.main()
