import shlex
from dataclasses import dataclass

from .._util.logging_utils import _log_debug
from ..core.config import ConfigResolver
from ..core.errors import EnvironmentFault
from ..core.images import ImageDefinition, local_foundational_image, local_test_image
from .runtime import DOCKER, image_exists, run_command

BUILD_PLATFORM = "linux/amd64"

# ---------- Base image resolution ----------


@dataclass(frozen=True)
class BaseImageChoice:
    """The BASE_IMAGE build argument for one image, with an optional warning."""

    reference: str
    warning: str | None = None


def resolve_base_image(
    definition: ImageDefinition,
    resolver: ConfigResolver,
    *,
    use_remote_base: bool = False,
) -> BaseImageChoice:
    """Pick the BASE_IMAGE for *definition*.

    The foundational image always builds from the upstream OS image.
    Dependent images use, in order:
      1. the remote runner base when *use_remote_base* is set,
      2. the locally built foundational image, if one exists (this run or an
         earlier one),
      3. the remote runner base, with a warning.
    """
    if definition.is_foundational:
        return BaseImageChoice(resolver.base_ubuntu())

    if use_remote_base:
        return BaseImageChoice(resolver.base_runner())

    local_base = local_foundational_image()
    if image_exists(local_base):
        return BaseImageChoice(local_base)

    remote = resolver.base_runner()
    return BaseImageChoice(
        remote,
        warning=f"Local base image not found, using remote: {remote}",
    )


# ---------- Build ----------


@dataclass(frozen=True)
class BuildRequest:
    definition: ImageDefinition
    base_image: str
    tag: str
    use_cache: bool = True


@dataclass(frozen=True)
class BuildResult:
    image_name: str
    succeeded: bool
    output: str = ""
    timed_out: bool = False


def make_build_request(
    definition: ImageDefinition, base: BaseImageChoice, *, use_cache: bool = True
) -> BuildRequest:
    return BuildRequest(
        definition=definition,
        base_image=base.reference,
        tag=local_test_image(definition.name),
        use_cache=use_cache,
    )


def build_command(request: BuildRequest) -> list[str]:
    cmd = [DOCKER, "buildx", "build", "--platform", BUILD_PLATFORM]
    cmd += ["--build-arg", f"BASE_IMAGE={request.base_image}"]
    cmd += ["--tag", request.tag, "--load"]
    if not request.use_cache:
        cmd.append("--no-cache")
    cmd.append(str(request.definition.build_context_path))
    return cmd


def build_image(request: BuildRequest, *, timeout: float | None = None) -> BuildResult:
    """Build one image.

    A failed or timed-out build is returned as ``succeeded=False`` with the
    captured output. A missing build context or docker binary raises
    EnvironmentFault.
    """
    context = request.definition.build_context_path
    if not context.is_dir():
        raise EnvironmentFault(f"Build context not found: {context}")

    cmd = build_command(request)
    _log_debug(f"build_image: {shlex.join(cmd)}")
    result = run_command(cmd, timeout=timeout)

    output = result.output
    if result.timed_out:
        output = f"{output}\nBuild timed out after {timeout} seconds".lstrip("\n")
    return BuildResult(
        image_name=request.definition.name,
        succeeded=result.succeeded,
        output=output,
        timed_out=result.timed_out,
    )
