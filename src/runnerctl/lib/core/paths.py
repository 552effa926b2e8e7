# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Platform-aware path resolution for the repository tree and state directory."""

import getpass
import os
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "runnerctl"

CONFIG_FILE_NAME = "config.yml"
IMAGES_DIR_NAME = "images"


def _is_root() -> bool:
    """Return True if the current process is running as root."""
    try:
        return os.geteuid() == 0  # type: ignore[attr-defined]
    except AttributeError:
        return getpass.getuser() == "root"


def _looks_like_repo(path: Path) -> bool:
    return (path / CONFIG_FILE_NAME).is_file() or (path / IMAGES_DIR_NAME).is_dir()


def repo_root(explicit: Path | str | None = None) -> Path:
    """
    Root of the runner-images repository (holds config.yml, images/, tests/).

    Priority:
      1. *explicit* (the --repo-root option)
      2. RUNNERCTL_REPO_ROOT
      3. nearest ancestor of the working directory with config.yml or images/
      4. the working directory itself
    """
    if explicit:
        return Path(explicit).expanduser().resolve()

    env = os.getenv("RUNNERCTL_REPO_ROOT")
    if env:
        return Path(env).expanduser().resolve()

    cwd = Path.cwd().resolve()
    for candidate in (cwd, *cwd.parents):
        if _looks_like_repo(candidate):
            return candidate
    return cwd


def images_root(root: Path) -> Path:
    """Directory holding one sub-folder per image definition."""
    return root / IMAGES_DIR_NAME


def config_file_path(root: Path) -> Path:
    """
    Configuration document for the repository.

    RUNNERCTL_CONFIG_FILE wins (returned even if missing, to make intent
    visible); otherwise ``<root>/config.yml``.
    """
    env_file = os.getenv("RUNNERCTL_CONFIG_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve()
    return root / CONFIG_FILE_NAME


def integration_script_path(project: str) -> str:
    """In-container path of a project's build test script under /workspace."""
    return f"/workspace/tests/projects/{project}/test-build.sh"


def state_root() -> Path:
    """
    Writable state (debug log).

    Priority:
      1. RUNNERCTL_STATE_DIR
      2. if root   → /var/lib/runnerctl
         else      → platformdirs user data dir
    """
    env = os.getenv("RUNNERCTL_STATE_DIR")
    if env:
        return Path(env).expanduser()

    if _is_root():
        return Path("/var/lib") / APP_NAME

    return Path(user_data_dir(APP_NAME))
