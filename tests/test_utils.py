import os
import tempfile
import types
import unittest.mock
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from runnerctl.lib.containers.docker import BuildResult
from runnerctl.lib.containers.runtime import CommandResult
from runnerctl.lib.core.config import ConfigResolver, Settings, clear_cache
from runnerctl.lib.core.images import ImageDefinition

DEFAULT_CONFIG = """\
registry:
  url: ghcr.io
  owner: hutch79
  repository: ci-runner-images
base_images:
  ubuntu: ubuntu:24.04
naming:
  platform: ubuntu
actions:
  checkout: v4
"""


def write_image(
    images_dir: Path,
    name: str,
    *,
    smoke_yaml: str | None = None,
    build_test_yaml: str | None = None,
) -> Path:
    """Create ``images/<name>/Dockerfile`` plus optional declarations."""
    context = images_dir / name
    context.mkdir(parents=True, exist_ok=True)
    (context / "Dockerfile").write_text(
        "ARG BASE_IMAGE\nFROM ${BASE_IMAGE}\n", encoding="utf-8"
    )
    if smoke_yaml is not None:
        (context / "smoke-tests.yml").write_text(smoke_yaml, encoding="utf-8")
    if build_test_yaml is not None:
        (context / "build-test.yml").write_text(build_test_yaml, encoding="utf-8")
    return context


@contextmanager
def repo_env(
    images: Sequence[str] = ("base",),
    *,
    config_yaml: str | None = DEFAULT_CONFIG,
    extra_env: dict[str, str] | None = None,
) -> Iterator[types.SimpleNamespace]:
    """Create a temp runner-images repository and point runnerctl at it.

    Yields a namespace with: root, images_dir, config_file, state_dir.
    """
    with tempfile.TemporaryDirectory() as td:
        root = Path(td) / "repo"
        images_dir = root / "images"
        state_dir = Path(td) / "state"
        images_dir.mkdir(parents=True)
        for name in images:
            write_image(images_dir, name)

        config_file = root / "config.yml"
        if config_yaml is not None:
            config_file.write_text(config_yaml, encoding="utf-8")

        env_vars = {
            "RUNNERCTL_REPO_ROOT": str(root),
            "RUNNERCTL_STATE_DIR": str(state_dir),
            "NO_COLOR": "1",
        }
        if extra_env:
            env_vars.update(extra_env)

        clear_cache()
        try:
            with unittest.mock.patch.dict(os.environ, env_vars):
                os.environ.pop("RUNNERCTL_CONFIG_FILE", None)
                os.environ.pop("GITHUB_OUTPUT", None)
                if extra_env:
                    os.environ.update(extra_env)
                yield types.SimpleNamespace(
                    root=root,
                    images_dir=images_dir,
                    config_file=config_file,
                    state_dir=state_dir,
                )
        finally:
            clear_cache()


def make_resolver(document: dict | None = None) -> ConfigResolver:
    """Resolver over an in-memory config document (defaults when None)."""
    return ConfigResolver(Settings.from_document(document or {}))


def make_definition(name: str, root: Path | None = None) -> ImageDefinition:
    base = root or Path("/nonexistent/images")
    return ImageDefinition(
        name=name, is_foundational=name == "base", build_context_path=base / name
    )


def command_result(
    returncode: int | None = 0, output: str = "", *, timed_out: bool = False
) -> CommandResult:
    return CommandResult(args=("docker",), returncode=returncode, output=output, timed_out=timed_out)


def build_ok(name: str, output: str = "") -> BuildResult:
    return BuildResult(image_name=name, succeeded=True, output=output)


def build_failed(name: str, output: str = "boom") -> BuildResult:
    return BuildResult(image_name=name, succeeded=False, output=output)


def scripted_container(
    responses: dict[str, CommandResult],
    default: CommandResult | None = None,
) -> Callable[..., CommandResult]:
    """Fake ``run_in_container`` answering by the first key contained in the command.

    Calls are recorded on the returned function's ``calls`` list as
    ``(image, command, kwargs)`` tuples.
    """
    calls: list[tuple[str, str, dict]] = []

    def fake(image: str, command: str, **kwargs) -> CommandResult:
        calls.append((image, command, kwargs))
        for needle, result in responses.items():
            if needle in command:
                return result
        return default if default is not None else command_result(0, "")

    fake.calls = calls  # type: ignore[attr-defined]
    return fake
