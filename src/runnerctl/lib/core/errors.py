# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Exception hierarchy for conditions that end a run before or during work.

Build failures and check failures are not exceptions: they are recorded as
values (``BuildResult`` / ``CheckResult``) so the run can continue.
"""


class RunnerCtlError(RuntimeError):
    """Raised when runnerctl hits a known fatal condition."""


class ConfigError(RunnerCtlError):
    """The configuration document is unreadable or malformed."""


class ConfigDocumentMissing(ConfigError):
    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigKeyNotFound(ConfigError):
    def __init__(self, key_path: str) -> None:
        self.key_path = key_path
        super().__init__(f"Configuration key not found: {key_path}")


class CatalogError(RunnerCtlError):
    """The set of image definitions cannot be determined."""


class CatalogEmpty(CatalogError):
    def __init__(self, root) -> None:
        self.root = root
        super().__init__(f"No Dockerfiles found under {root}")


class UnknownSelector(CatalogError):
    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Unknown image or group: {token}")


class DeclarationError(RunnerCtlError):
    """A per-image smoke or integration declaration file is malformed."""


class EnvironmentFault(RunnerCtlError):
    """The host cannot run the container engine or a build context is missing."""
