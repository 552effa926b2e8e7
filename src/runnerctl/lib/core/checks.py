# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Verification cases and their evaluation against captured command output.

Per-image declarations live next to the Dockerfile:

``smoke-tests.yml``::

    - name: .NET SDK Version
      command: dotnet --version
      expected_version: "8"
    - name: NuGet available
      command: dotnet nuget --version
      expected_matches: "^[0-9]+\\."

``build-test.yml``::

    - project: dotnet-8
      should_build: true

Both files are optional; a missing file means no image-specific checks.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # pip install pyyaml

from .errors import DeclarationError

SMOKE_DECLARATION = "smoke-tests.yml"
INTEGRATION_DECLARATION = "build-test.yml"

MULTI_LABEL = "multi"

# Image names that encode a tool major version: dotnet-8, node-22, dotnet-multi.
VERSIONED_NAME_RE = re.compile(r"^(?P<tool>[A-Za-z][A-Za-z0-9_.]*)-(?P<label>[0-9]+|multi)$")
LEADING_VERSION_RE = re.compile(r"^\s*v?([0-9]+)\.", re.MULTILINE)


@dataclass(frozen=True)
class CheckSpec:
    """One command to run inside an image plus the expectations on its output."""

    name: str
    command: str
    contains_substring: str | None = None
    matches_pattern: str | None = None
    expected_version_major: str | None = None


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    failure_reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class IntegrationSpec:
    """A project build test expected to succeed (or fail) inside an image."""

    project: str
    should_build: bool


# Checked against every image regardless of its own declaration.
GENERAL_CHECKS: tuple[CheckSpec, ...] = (
    CheckSpec("Git Version", "git --version", contains_substring="git version"),
    CheckSpec("Node Version", "node --version", matches_pattern=r"v[0-9]"),
    CheckSpec("Curl Version", "curl --version", contains_substring="curl"),
    CheckSpec("Bash Version", "bash --version", contains_substring="GNU bash"),
)


# ---------- Evaluation ----------


def version_label(image_name: str) -> str | None:
    """Return the version label encoded in *image_name* (``"8"``, ``"multi"``) or None."""
    match = VERSIONED_NAME_RE.match(image_name)
    return match.group("label") if match else None


def _version_failure(expected: str, output: str, image_name: str) -> str | None:
    label = version_label(image_name)
    if label is None:
        # Not a versioned image; the expectation does not apply.
        return None
    if label == MULTI_LABEL:
        if expected in output:
            return None
        return f"Expected version {expected} in output"

    major = expected.split(".", 1)[0]
    match = LEADING_VERSION_RE.search(output)
    if match and match.group(1) == major:
        return None
    found = match.group(0).strip() if match else "none"
    return f"Expected major version {major} (found: {found})"


def evaluate(spec: CheckSpec, output: str, image_name: str) -> CheckResult:
    """Evaluate every expectation of *spec* against *output*.

    Expectations are AND-ed and each failing one contributes its own reason.
    """
    reasons: list[str] = []

    if spec.contains_substring is not None and spec.contains_substring not in output:
        reasons.append(f"Expected to contain '{spec.contains_substring}'")

    if spec.matches_pattern is not None:
        try:
            matched = re.search(spec.matches_pattern, output) is not None
        except re.error as exc:
            reasons.append(f"Invalid pattern '{spec.matches_pattern}': {exc}")
        else:
            if not matched:
                reasons.append(f"Expected to match regex '{spec.matches_pattern}'")

    if spec.expected_version_major is not None:
        reason = _version_failure(spec.expected_version_major, output, image_name)
        if reason:
            reasons.append(reason)

    return CheckResult(spec.name, not reasons, tuple(reasons))


# ---------- Declarations ----------


def _load_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise DeclarationError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise DeclarationError(f"Cannot read {path}: {exc}") from exc


def _optional_text(item: dict, key: str) -> str | None:
    value = item.get(key)
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _parse_check(item: Any, path: Path, index: int) -> CheckSpec:
    if not isinstance(item, dict):
        raise DeclarationError(f"{path}: entry {index} must be a mapping")
    name = _optional_text(item, "name")
    command = _optional_text(item, "command")
    if not name or not command:
        raise DeclarationError(f"{path}: entry {index} needs both 'name' and 'command'")

    pattern = _optional_text(item, "expected_matches")
    if pattern is not None:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise DeclarationError(f"{path}: invalid expected_matches for '{name}': {exc}")

    return CheckSpec(
        name=name,
        command=command,
        contains_substring=_optional_text(item, "expected_contains"),
        matches_pattern=pattern,
        expected_version_major=_optional_text(item, "expected_version"),
    )


def load_smoke_checks(context: Path) -> list[CheckSpec]:
    """Load ``smoke-tests.yml`` from an image folder; ``[]`` when absent."""
    path = context / SMOKE_DECLARATION
    if not path.is_file():
        return []
    data = _load_yaml(path)
    if data is None:
        return []
    if not isinstance(data, list):
        raise DeclarationError(f"{path}: expected a list of checks")
    return [_parse_check(item, path, index) for index, item in enumerate(data, start=1)]


def _parse_bool(value: Any, path: Path, project: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes"):
        return True
    if text in ("false", "no"):
        return False
    raise DeclarationError(f"{path}: should_build for '{project}' must be true or false")


def load_integration_specs(context: Path) -> list[IntegrationSpec]:
    """Load ``build-test.yml`` from an image folder; ``[]`` when absent.

    The file holds a list of ``{project, should_build}`` records or a single
    such mapping. Records missing either key are ignored.
    """
    path = context / INTEGRATION_DECLARATION
    if not path.is_file():
        return []
    data = _load_yaml(path)
    if data is None:
        return []
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise DeclarationError(f"{path}: expected a list of project build tests")

    specs: list[IntegrationSpec] = []
    for item in data:
        if not isinstance(item, dict) or "project" not in item or "should_build" not in item:
            continue
        project = str(item["project"])
        specs.append(IntegrationSpec(project, _parse_bool(item["should_build"], path, project)))
    return specs
