import os
import sys
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO

from runnerctl.cli.main import main
from runnerctl.lib.core.checks import CheckResult
from runnerctl.lib.core.errors import EnvironmentFault
from runnerctl.lib.orchestration.report import ImageRunReport, RunSummary
from test_utils import build_failed, build_ok, repo_env

MAIN = "runnerctl.cli.main"


def _run_cli(*argv: str) -> tuple[str, str, int]:
    """Run ``runnerctl *argv`` and return (stdout, stderr, exit code)."""
    out, err = StringIO(), StringIO()
    code = 0
    with (
        unittest.mock.patch.object(sys, "argv", ["runnerctl", *argv]),
        redirect_stdout(out),
        redirect_stderr(err),
    ):
        try:
            main()
        except SystemExit as exc:
            code = exc.code if isinstance(exc.code, int) else 1
    return out.getvalue(), err.getvalue(), code


class ConfigCommandTests(unittest.TestCase):
    def test_config_queries(self) -> None:
        cases = [
            (("get", "registry.owner"), "hutch79"),
            (("get", "actions.missing", "v9"), "v9"),
            (("registry-path",), "ghcr.io/hutch79/ci-runner-images"),
            (("image-name", "dotnet-8"), "ubuntu-dotnet-8"),
            (("image-name", "base"), "base"),
            (("full-tag", "dotnet-8"), "ghcr.io/hutch79/ci-runner-images:ubuntu-dotnet-8"),
            (
                ("full-tag", "dotnet-8", "20251208"),
                "ghcr.io/hutch79/ci-runner-images:ubuntu-dotnet-8-20251208",
            ),
            (("base-ubuntu",), "ubuntu:24.04"),
            (("base-runner",), "ghcr.io/hutch79/ci-runner-images:base"),
            (("action-version", "checkout"), "v4"),
        ]
        with repo_env():
            for args, expected in cases:
                with self.subTest(args=args):
                    out, _err, code = _run_cli("config", *args)
                    self.assertEqual(code, 0)
                    self.assertEqual(out.strip(), expected)

    def test_missing_key_is_fatal(self) -> None:
        with repo_env():
            out, err, code = _run_cli("config", "get", "actions.missing")
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Configuration key not found: actions.missing", err)

    def test_missing_config_file_is_fatal(self) -> None:
        with repo_env(config_yaml=None):
            _out, err, code = _run_cli("config", "registry-path")
        self.assertEqual(code, 1)
        self.assertIn("Configuration file not found", err)

    def test_config_show(self) -> None:
        with repo_env() as env:
            out, _err, code = _run_cli("config", "show")
        self.assertEqual(code, 0)
        self.assertIn(str(env.root.resolve()), out)
        self.assertIn("Registry path: ghcr.io/hutch79/ci-runner-images", out)
        self.assertIn("checkout: v4", out)


class ImagesCommandTests(unittest.TestCase):
    def test_lists_images_and_groups(self) -> None:
        with repo_env(["base", "dotnet-8", "dotnet-9", "node-20"]):
            out, _err, code = _run_cli("images")
        self.assertEqual(code, 0)
        for name in ("base", "dotnet-8", "dotnet-9", "node-20"):
            self.assertIn(f"  - {name}", out)
        self.assertIn("Image groups:", out)
        self.assertIn("  - dotnet", out)

    def test_empty_catalog_is_fatal(self) -> None:
        with repo_env([]):
            _out, err, code = _run_cli("images")
        self.assertEqual(code, 1)
        self.assertIn("No Dockerfiles found", err)


class BuildCommandTests(unittest.TestCase):
    def _patched(self, summary: RunSummary):
        coordinator = unittest.mock.MagicMock()
        coordinator.return_value.run.return_value = summary
        return (
            unittest.mock.patch(f"{MAIN}.RunCoordinator", coordinator),
            unittest.mock.patch(f"{MAIN}.check_docker_available"),
            coordinator,
        )

    def test_no_selectors_prints_usage(self) -> None:
        with (
            repo_env(["base", "node-20"]),
            unittest.mock.patch(f"{MAIN}.RunCoordinator") as coordinator,
        ):
            out, _err, code = _run_cli("build")
        self.assertEqual(code, 0)
        self.assertIn("Usage: runnerctl build", out)
        self.assertIn("  - node-20", out)
        coordinator.assert_not_called()

    def test_unknown_selector_fails_before_work(self) -> None:
        with (
            repo_env(["base", "node-20"]),
            unittest.mock.patch(f"{MAIN}.RunCoordinator") as coordinator,
        ):
            _out, err, code = _run_cli("build", "rust")
        self.assertEqual(code, 1)
        self.assertIn("Unknown image or group: rust", err)
        coordinator.assert_not_called()

    def test_selection_and_options_passed_to_coordinator(self) -> None:
        summary = RunSummary((ImageRunReport("dotnet-8", build_ok("dotnet-8")),))
        patch_coordinator, patch_docker, coordinator = self._patched(summary)
        with repo_env(["base", "dotnet-8", "node-20"]) as env, patch_coordinator, patch_docker:
            _out, _err, code = _run_cli(
                "build", "dotnet-8", "--no-cache", "--skip-integration", "--remote-base"
            )
        self.assertEqual(code, 0)
        args, kwargs = coordinator.call_args
        options = args[2]
        self.assertFalse(options.use_cache)
        self.assertTrue(options.run_smoke)
        self.assertFalse(options.run_integration)
        self.assertTrue(options.use_remote_base)
        self.assertEqual(args[1], env.root.resolve())
        self.assertIsNone(kwargs["result_log"])
        selected = coordinator.return_value.run.call_args.args[0]
        self.assertEqual([d.name for d in selected], ["dotnet-8"])

    def test_failed_run_exits_non_zero_and_writes_github_outputs(self) -> None:
        summary = RunSummary(
            (
                ImageRunReport("base", build_ok("base")),
                ImageRunReport("node-20", build_failed("node-20")),
                ImageRunReport(
                    "dotnet-8",
                    build_ok("dotnet-8"),
                    (CheckResult("x", False, ("bad",)),),
                    smoke_ran=True,
                ),
            )
        )
        patch_coordinator, patch_docker, _ = self._patched(summary)
        with repo_env(["base", "dotnet-8", "node-20"]) as env:
            gh_out = env.root / "gh-output"
            with (
                unittest.mock.patch.dict(os.environ, {"GITHUB_OUTPUT": str(gh_out)}),
                patch_coordinator,
                patch_docker,
            ):
                out, _err, code = _run_cli("build", "all", "--results-log", "r.txt")
            text = gh_out.read_text(encoding="utf-8")
        self.assertEqual(code, 1)
        self.assertIn("failed-builds=node-20", text)
        self.assertIn("failed-tests=dotnet-8", text)
        self.assertIn("Some builds or tests failed", out)

    def test_environment_fault_still_prints_summary(self) -> None:
        builds = [build_ok("base"), EnvironmentFault("docker daemon went away")]
        with (
            repo_env(["base", "node-20"]),
            unittest.mock.patch(f"{MAIN}.check_docker_available"),
            unittest.mock.patch(
                "runnerctl.lib.orchestration.coordinator.build_image", side_effect=builds
            ),
            unittest.mock.patch(
                "runnerctl.lib.containers.docker.image_exists", return_value=True
            ),
        ):
            out, _err, code = _run_cli("build", "all")
        self.assertEqual(code, 1)
        self.assertIn("Images: 1", out)
        self.assertIn("Run aborted: Environment fault: docker daemon went away", out)

    def test_docker_missing_is_fatal(self) -> None:
        with (
            repo_env(["base"]),
            unittest.mock.patch("shutil.which", return_value=None),
        ):
            _out, err, code = _run_cli("build", "all")
        self.assertEqual(code, 1)
        self.assertIn("docker not found", err)

    def test_clean_flag_runs_cleanup(self) -> None:
        with (
            repo_env(["base"]),
            unittest.mock.patch(f"{MAIN}.check_docker_available"),
            unittest.mock.patch(f"{MAIN}.clean_local_images", return_value=0) as clean,
        ):
            _out, _err, code = _run_cli("build", "--clean", "--yes")
        self.assertEqual(code, 0)
        self.assertTrue(clean.call_args.kwargs["assume_yes"])


class TestCommandTests(unittest.TestCase):
    def test_single_image_is_explicit(self) -> None:
        with (
            repo_env(["base", "dotnet-8"]),
            unittest.mock.patch(f"{MAIN}.check_docker_available"),
            unittest.mock.patch(f"{MAIN}.RunCoordinator") as coordinator,
        ):
            coordinator.return_value.verify_existing.return_value = RunSummary(())
            _out, _err, code = _run_cli("test", "dotnet-8", "--skip-integration")
        self.assertEqual(code, 0)
        call = coordinator.return_value.verify_existing.call_args
        self.assertEqual([d.name for d in call.args[0]], ["dotnet-8"])
        self.assertTrue(call.kwargs["explicit"])
        self.assertFalse(coordinator.call_args.args[2].run_integration)

    def test_no_image_tests_all(self) -> None:
        with (
            repo_env(["base", "dotnet-8"]),
            unittest.mock.patch(f"{MAIN}.check_docker_available"),
            unittest.mock.patch(f"{MAIN}.RunCoordinator") as coordinator,
        ):
            coordinator.return_value.verify_existing.return_value = RunSummary(())
            _out, _err, code = _run_cli("test")
        self.assertEqual(code, 0)
        call = coordinator.return_value.verify_existing.call_args
        self.assertEqual([d.name for d in call.args[0]], ["base", "dotnet-8"])
        self.assertFalse(call.kwargs["explicit"])


class CleanCommandTests(unittest.TestCase):
    def test_failure_exit_code_propagates(self) -> None:
        with (
            repo_env(),
            unittest.mock.patch(f"{MAIN}.check_docker_available"),
            unittest.mock.patch(f"{MAIN}.clean_local_images", return_value=1),
        ):
            _out, _err, code = _run_cli("clean", "--yes")
        self.assertEqual(code, 1)


class VersionTests(unittest.TestCase):
    def test_version_flag(self) -> None:
        out, _err, code = _run_cli("--version")
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("runnerctl "))
