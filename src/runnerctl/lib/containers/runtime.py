"""Container engine calls that can be safely imported by other modules.

Every external command goes through :func:`run_command` so that output
capture, the per-call time limit and the "engine not installed" fault are
handled in one place.
"""

import shutil
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .._util.logging_utils import _log_debug
from ..core.errors import EnvironmentFault
from ..core.images import LOCAL_IMAGE_PREFIX

DOCKER = "docker"

# Bound for inspect/list/rmi calls against the local image store.
ENGINE_QUERY_TIMEOUT = 120


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command: exit status plus combined stdout/stderr."""

    args: tuple[str, ...]
    returncode: int | None
    output: str
    timed_out: bool = False
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run_command(
    args: Sequence[str],
    *,
    timeout: float | None = None,
    cwd: Path | None = None,
) -> CommandResult:
    """Run *args*, capturing stdout and stderr together.

    A non-zero exit is returned, not raised. A timeout is returned with
    ``timed_out=True``. A missing executable raises EnvironmentFault.
    """
    argv = tuple(str(a) for a in args)
    _log_debug(f"run_command: {' '.join(argv)} (timeout={timeout})")
    start = time.monotonic()
    try:
        completed = subprocess.run(
            list(argv),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
            check=False,
        )
    except FileNotFoundError as exc:
        raise EnvironmentFault(f"{argv[0]} not found; please install {argv[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        duration = time.monotonic() - start
        _log_debug(f"run_command: timed out after {duration:.1f}s: {' '.join(argv)}")
        return CommandResult(
            args=argv,
            returncode=None,
            output=_as_text(exc.output),
            timed_out=True,
            duration=duration,
        )

    duration = time.monotonic() - start
    _log_debug(f"run_command: exit {completed.returncode} after {duration:.1f}s")
    return CommandResult(
        args=argv,
        returncode=completed.returncode,
        output=_as_text(completed.stdout),
        duration=duration,
    )


def check_docker_available() -> None:
    """Raise EnvironmentFault if docker is not on PATH."""
    if shutil.which(DOCKER) is None:
        raise EnvironmentFault("docker not found; please install docker")


def _engine_query(args: Sequence[str], timeout: float) -> CommandResult:
    """Run a short image-store command; a hung engine is an EnvironmentFault."""
    result = run_command(args, timeout=timeout)
    if result.timed_out:
        command = " ".join(args[:3])
        raise EnvironmentFault(f"{command} did not finish within {timeout} seconds")
    return result


def image_exists(image: str, *, timeout: float = ENGINE_QUERY_TIMEOUT) -> bool:
    """Check if a container image exists in the local image store."""
    return _engine_query([DOCKER, "image", "inspect", image], timeout).succeeded


def list_local_images(
    prefix: str = LOCAL_IMAGE_PREFIX, *, timeout: float = ENGINE_QUERY_TIMEOUT
) -> list[str]:
    """Return ``repository:tag`` of every local image whose repository starts with *prefix*."""
    result = _engine_query(
        [
            DOCKER,
            "images",
            "--filter",
            f"reference={prefix}*",
            "--format",
            "{{.Repository}}:{{.Tag}}",
        ],
        timeout,
    )
    if not result.succeeded:
        return []
    return [line.strip() for line in result.output.splitlines() if line.strip()]


def remove_image(image: str, *, timeout: float = ENGINE_QUERY_TIMEOUT) -> bool:
    """Remove one local image; return True on success."""
    return _engine_query([DOCKER, "rmi", image], timeout).succeeded


def run_in_container(
    image: str,
    command: str,
    *,
    timeout: float | None = None,
    workspace: Path | None = None,
    workdir: str | None = None,
) -> CommandResult:
    """Run ``bash -c <command>`` in a throwaway container of *image*.

    When *workspace* is given it is mounted read-write at ``/workspace``.
    """
    argv = [DOCKER, "run", "--rm"]
    if workspace is not None:
        argv += ["-v", f"{workspace}:/workspace"]
    if workdir:
        argv += ["-w", workdir]
    argv += [image, "bash", "-c", command]
    return run_command(argv, timeout=timeout)
