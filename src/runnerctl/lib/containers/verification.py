"""Smoke and integration tiers run against a built image."""

import posixpath
import shlex
from pathlib import Path

from .._util.logging_utils import _log_debug
from ..core.checks import (
    GENERAL_CHECKS,
    CheckResult,
    CheckSpec,
    IntegrationSpec,
    evaluate,
    load_integration_specs,
    load_smoke_checks,
)
from ..core.images import ImageDefinition
from ..core.paths import integration_script_path
from .runtime import run_in_container


def _timed_out(name: str, timeout: float | None) -> CheckResult:
    return CheckResult(name, False, (f"Timed out after {timeout} seconds",))


def _run_check(
    tag: str, spec: CheckSpec, definition: ImageDefinition, timeout: float | None
) -> CheckResult:
    result = run_in_container(tag, spec.command, timeout=timeout)
    if result.timed_out:
        return _timed_out(spec.name, timeout)

    output = result.output.strip()[:500]
    _log_debug(f"smoke[{definition.name}] {spec.name}: exit={result.returncode} {output}")
    evaluated = evaluate(spec, result.output, definition.name)
    if result.succeeded:
        return evaluated
    # A non-zero exit fails the check even when the output matches.
    exit_reason = f"Command exited with status {result.returncode}"
    return CheckResult(spec.name, False, (exit_reason, *evaluated.failure_reasons))


def run_smoke(
    tag: str, definition: ImageDefinition, *, timeout: float | None = None
) -> list[CheckResult]:
    """Run the general checks, then the image's ``smoke-tests.yml`` checks."""
    specs = [*GENERAL_CHECKS, *load_smoke_checks(definition.build_context_path)]
    return [_run_check(tag, spec, definition, timeout) for spec in specs]


def _run_project_build(
    tag: str, spec: IntegrationSpec, workspace: Path, timeout: float | None
) -> CheckResult:
    script = integration_script_path(spec.project)

    exists = run_in_container(
        tag, f"test -f {shlex.quote(script)}", timeout=timeout, workspace=workspace
    )
    if exists.timed_out:
        return _timed_out(spec.project, timeout)
    if not exists.succeeded:
        return CheckResult(spec.project, False, (f"Test script not found at {script}",))

    script_dir = posixpath.dirname(script)
    run = run_in_container(
        tag,
        f"cd {shlex.quote(script_dir)} && bash {shlex.quote(posixpath.basename(script))}",
        timeout=timeout,
        workspace=workspace,
        workdir="/workspace",
    )
    if run.timed_out:
        return _timed_out(spec.project, timeout)
    _log_debug(f"integration[{spec.project}] exit={run.returncode}: {run.output.strip()[-500:]}")

    if run.succeeded == spec.should_build:
        return CheckResult(spec.project, True)
    outcome = "success" if run.succeeded else "failure"
    expected = "true" if spec.should_build else "false"
    return CheckResult(
        spec.project,
        False,
        (f"Build result ({outcome}) did not match expectation (should_build: {expected})",),
    )


def run_integration(
    tag: str,
    definition: ImageDefinition,
    *,
    workspace: Path,
    timeout: float | None = None,
) -> list[CheckResult]:
    """Run every project build test declared in the image's ``build-test.yml``.

    *workspace* (the repository root) is mounted read-write at ``/workspace``.
    No declaration means the tier is skipped and ``[]`` is returned.
    """
    specs = load_integration_specs(definition.build_context_path)
    return [_run_project_build(tag, spec, workspace, timeout) for spec in specs]
