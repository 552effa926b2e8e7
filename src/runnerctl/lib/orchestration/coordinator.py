# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Sequence builds and verification over the selected images.

The foundational image is built first; if it fails the run is aborted and
nothing else is built or verified. Every other image is built in catalog
order and, when its own build succeeded, verified straight away. Failures
of dependent images are recorded and the run carries on.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .._util.ansi import error, header, info, success, warning
from .._util.logging_utils import _log_debug
from ..containers.docker import (
    BuildResult,
    build_image,
    make_build_request,
    resolve_base_image,
)
from ..containers.runtime import image_exists
from ..containers.verification import run_integration, run_smoke
from ..core.checks import CheckResult, load_integration_specs, load_smoke_checks
from ..core.config import ConfigResolver
from ..core.errors import EnvironmentFault
from ..core.images import ImageDefinition, catalog_order, local_test_image
from .report import ImageRunReport, ResultLog, RunSummary


class RunState(Enum):
    NOT_STARTED = "not-started"
    BUILDING_FOUNDATIONAL = "building-foundational"
    ABORTED = "aborted"
    BUILDING_DEPENDENTS = "building-dependents"
    VERIFYING = "verifying"
    REPORTED = "reported"


@dataclass(frozen=True)
class RunOptions:
    use_cache: bool = True
    run_tests: bool = True
    run_smoke: bool = True
    run_integration: bool = True
    use_remote_base: bool = False


class RunCoordinator:
    """Drive one build (or test-only) run and return its :class:`RunSummary`."""

    def __init__(
        self,
        resolver: ConfigResolver,
        workspace: Path,
        options: RunOptions | None = None,
        *,
        result_log: ResultLog | None = None,
    ) -> None:
        self.resolver = resolver
        self.workspace = workspace
        self.options = options or RunOptions()
        self.result_log = result_log
        self.state = RunState.NOT_STARTED
        self.history: list[RunState] = [RunState.NOT_STARTED]

    # ---------- state ----------

    def _transition(self, state: RunState) -> None:
        if state is not self.state:
            _log_debug(f"coordinator: {self.state.value} -> {state.value}")
            self.state = state
            self.history.append(state)

    def _finish(self, reports: list[ImageRunReport], *, abort_reason: str | None = None) -> RunSummary:
        if abort_reason is None:
            self._transition(RunState.REPORTED)
        return RunSummary(
            reports=tuple(reports),
            aborted=abort_reason is not None,
            abort_reason=abort_reason,
        )

    def _record(self, reports: list[ImageRunReport], report: ImageRunReport) -> None:
        reports.append(report)
        if self.result_log is not None:
            self.result_log.record(report)

    # ---------- steps ----------

    def _build(self, definition: ImageDefinition) -> BuildResult:
        print()
        header(f"Building: {definition.name}")

        base = resolve_base_image(
            definition, self.resolver, use_remote_base=self.options.use_remote_base
        )
        if base.warning:
            warning(base.warning)
        request = make_build_request(definition, base, use_cache=self.options.use_cache)

        info(f"Image directory: {definition.build_context_path}")
        info(f"Base image: {request.base_image}")
        info(f"Local tag: {request.tag}")

        result = build_image(request, timeout=self.resolver.timeouts.build)
        if result.succeeded:
            success(f"Built: {definition.name}")
        else:
            error(f"Failed to build: {definition.name}")
            error("Build error details:")
            for line in result.output.splitlines():
                print(f"  {line}")
        return result

    def _report_tier(self, label: str, name: str, results: Sequence[CheckResult]) -> None:
        failed = [r for r in results if not r.passed]
        if not results:
            info(f"{label}: nothing declared for {name}")
        elif failed:
            error(f"{label} failed: {name} ({', '.join(r.name for r in failed)})")
        else:
            success(f"{label} passed: {name}")

    def _verify(self, definition: ImageDefinition, build_result: BuildResult) -> ImageRunReport:
        self._transition(RunState.VERIFYING)
        tag = local_test_image(definition.name)
        info(f"Running tests for: {definition.name}")

        smoke: tuple[CheckResult, ...] = ()
        integration: tuple[CheckResult, ...] = ()
        if self.options.run_smoke:
            info("Running smoke tests...")
            smoke = tuple(run_smoke(tag, definition, timeout=self.resolver.timeouts.check))
            self._report_tier("Smoke tests", definition.name, smoke)
        if self.options.run_integration:
            info("Running integration tests...")
            integration = tuple(
                run_integration(
                    tag,
                    definition,
                    workspace=self.workspace,
                    timeout=self.resolver.timeouts.integration,
                )
            )
            self._report_tier("Integration tests", definition.name, integration)

        report = ImageRunReport(
            name=definition.name,
            build_result=build_result,
            smoke_results=smoke,
            integration_results=integration,
            smoke_ran=self.options.run_smoke,
            integration_ran=self.options.run_integration,
        )
        if report.overall_passed:
            success(f"Tests passed: {definition.name}")
        else:
            error(f"Tests failed: {definition.name}")
        return report

    def _validate_declarations(self, definitions: Sequence[ImageDefinition]) -> None:
        """Parse the declarations of every image that will be verified.

        A malformed declaration raises DeclarationError here, before the
        first build starts.
        """
        if not self.options.run_tests:
            return
        for definition in definitions:
            if self.options.run_smoke:
                load_smoke_checks(definition.build_context_path)
            if self.options.run_integration:
                load_integration_specs(definition.build_context_path)

    def _environment_abort(self, exc: EnvironmentFault) -> str:
        self._transition(RunState.ABORTED)
        _log_debug(f"coordinator: environment fault: {exc}")
        error(f"Environment fault, aborting run: {exc}")
        return f"Environment fault: {exc}"

    # ---------- runs ----------

    def _build_all(
        self, ordered: list[ImageDefinition], reports: list[ImageRunReport]
    ) -> str | None:
        for definition in ordered:
            if not definition.is_foundational:
                continue
            self._transition(RunState.BUILDING_FOUNDATIONAL)
            result = self._build(definition)
            self._record(reports, ImageRunReport(definition.name, result))
            if not result.succeeded:
                self._transition(RunState.ABORTED)
                error("Base image build failed! Aborting all builds.")
                return f"Foundational image '{definition.name}' failed to build"

        for definition in ordered:
            if definition.is_foundational:
                continue
            self._transition(RunState.BUILDING_DEPENDENTS)
            result = self._build(definition)
            if result.succeeded and self.options.run_tests:
                report = self._verify(definition, result)
            else:
                report = ImageRunReport(definition.name, result)
            self._record(reports, report)
        return None

    def run(self, selected: Sequence[ImageDefinition]) -> RunSummary:
        """Build (and verify) *selected*; see the module docstring for the rules.

        An EnvironmentFault during the run aborts it; the reports gathered
        so far are still returned.
        """
        ordered = sorted(selected, key=catalog_order)
        self._validate_declarations([d for d in ordered if not d.is_foundational])

        reports: list[ImageRunReport] = []
        if self.result_log is not None:
            self.result_log.start()

        info(f"Found {len(ordered)} images to build")
        try:
            abort_reason = self._build_all(ordered, reports)
        except EnvironmentFault as exc:
            abort_reason = self._environment_abort(exc)
        return self._finish(reports, abort_reason=abort_reason)

    def _verify_all(
        self, ordered: list[ImageDefinition], reports: list[ImageRunReport], explicit: bool
    ) -> None:
        for definition in ordered:
            tag = local_test_image(definition.name)
            print()
            header(f"Testing: {definition.name}")

            if not image_exists(tag):
                if explicit:
                    raise EnvironmentFault(
                        f"Image not found: {tag} (try: runnerctl build {definition.name})"
                    )
                warning(f"Image not found: {tag} (skipping)")
                continue
            if definition.is_foundational and not explicit:
                info("Skipping base image (no tests)")
                continue

            existing = BuildResult(definition.name, True, f"existing local image {tag}")
            self._record(reports, self._verify(definition, existing))

    def verify_existing(self, selected: Sequence[ImageDefinition], *, explicit: bool) -> RunSummary:
        """Verify already-built local images without building anything.

        With *explicit* (images named on the command line) a missing local
        image aborts the run. Otherwise missing images and the foundational
        image are skipped.
        """
        ordered = sorted(selected, key=catalog_order)
        self._validate_declarations(
            [d for d in ordered if explicit or not d.is_foundational]
        )

        reports: list[ImageRunReport] = []
        if self.result_log is not None:
            self.result_log.start()

        try:
            self._verify_all(ordered, reports, explicit)
        except EnvironmentFault as exc:
            return self._finish(reports, abort_reason=self._environment_abort(exc))
        return self._finish(reports)
