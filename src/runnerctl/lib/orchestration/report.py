"""Per-image reports, the run summary, and the places they are written to."""

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .._util.fs import append_line, truncate_file
from ..containers.docker import BuildResult
from ..core.checks import CheckResult


@dataclass(frozen=True)
class ImageRunReport:
    name: str
    build_result: BuildResult
    smoke_results: tuple[CheckResult, ...] = ()
    integration_results: tuple[CheckResult, ...] = ()
    smoke_ran: bool = False
    integration_ran: bool = False

    @property
    def check_results(self) -> tuple[CheckResult, ...]:
        return self.smoke_results + self.integration_results

    @property
    def tests_passed(self) -> bool:
        return all(result.passed for result in self.check_results)

    @property
    def overall_passed(self) -> bool:
        return self.build_result.succeeded and self.tests_passed

    @property
    def failed_checks(self) -> list[str]:
        return [result.name for result in self.check_results if not result.passed]


@dataclass(frozen=True)
class RunSummary:
    reports: tuple[ImageRunReport, ...]
    aborted: bool = False
    abort_reason: str | None = None

    @property
    def passed_count(self) -> int:
        return sum(1 for report in self.reports if report.overall_passed)

    @property
    def failed_count(self) -> int:
        return len(self.reports) - self.passed_count

    @property
    def failed_builds(self) -> list[str]:
        return [r.name for r in self.reports if not r.build_result.succeeded]

    @property
    def failed_tests(self) -> list[str]:
        return [r.name for r in self.reports if r.build_result.succeeded and not r.tests_passed]

    @property
    def exit_code(self) -> int:
        if self.aborted or self.failed_count:
            return 1
        return 0


# ---------- Result log ----------


class ResultLog:
    """Append-only ``<image>:<passed|failed>`` log, one line per finished image.

    :meth:`start` empties the file so entries from an earlier run are never
    mistaken for this run's results.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def start(self) -> None:
        truncate_file(self.path)

    def record(self, report: ImageRunReport) -> None:
        status = "passed" if report.overall_passed else "failed"
        append_line(self.path, f"{report.name}:{status}")


# ---------- GitHub Actions ----------


def write_github_outputs(values: Mapping[str, str]) -> bool:
    """
    Write step outputs for GitHub Actions.

    GitHub provides a file path in `GITHUB_OUTPUT`; writing `name=value` lines
    there makes that value available to later steps in the same job. Returns
    False (and writes nothing) outside of GitHub Actions.
    """
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        return False
    with open(output_file, "a", encoding="utf-8") as handle:
        for key, value in values.items():
            handle.write(f"{key}={value}\n")
    return True


def github_outputs(summary: RunSummary) -> dict[str, str]:
    return {
        "failed-builds": "; ".join(summary.failed_builds),
        "failed-tests": "; ".join(summary.failed_tests),
    }


# ---------- Terminal summary ----------


def _tier_cell(ran: bool, results: Iterable[CheckResult]) -> str:
    if not ran:
        return "[dim]skipped[/dim]"
    results = list(results)
    if not results:
        return "[dim]none[/dim]"
    passed = sum(1 for r in results if r.passed)
    style = "green" if passed == len(results) else "red"
    return f"[{style}]{passed}/{len(results)}[/{style}]"


def summary_table(summary: RunSummary) -> Table:
    table = Table(title="Build Summary", title_justify="left")
    table.add_column("Image")
    table.add_column("Build")
    table.add_column("Smoke")
    table.add_column("Integration")
    table.add_column("Result")
    table.add_column("Failing checks")

    for report in summary.reports:
        build = "[green]ok[/green]" if report.build_result.succeeded else "[red]failed[/red]"
        if report.build_result.timed_out:
            build = "[red]timed out[/red]"
        result = "[green]✓ passed[/green]" if report.overall_passed else "[red]✗ failed[/red]"
        table.add_row(
            escape(report.name),
            build,
            _tier_cell(report.smoke_ran, report.smoke_results),
            _tier_cell(report.integration_ran, report.integration_results),
            result,
            escape(", ".join(report.failed_checks)),
        )
    return table


def print_summary(summary: RunSummary, console: Console | None = None) -> None:
    """Render the per-image table, itemised check failures and totals."""
    console = console or Console()
    console.print()
    console.print(summary_table(summary))

    for report in summary.reports:
        for check in report.check_results:
            if check.passed:
                continue
            console.print(f"[red]✗ {escape(report.name)}: {escape(check.name)}[/red]")
            for reason in check.failure_reasons:
                console.print(f"    {reason}", markup=False)

    console.print(f"Images: {len(summary.reports)}")
    console.print(f"Passed: {summary.passed_count}")
    console.print(f"Failed builds: {len(summary.failed_builds)}")
    console.print(f"Failed tests: {len(summary.failed_tests)}")

    if summary.aborted:
        console.print(f"[red]✗ Run aborted: {escape(summary.abort_reason or '')}[/red]")
    elif summary.exit_code == 0:
        console.print("[green]✓ All builds and tests passed![/green]")
    else:
        console.print("[red]✗ Some builds or tests failed[/red]")
