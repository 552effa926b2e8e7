#!/usr/bin/env python3

import argparse
import sys
from pathlib import Path

from .. import __version__
from ..lib.containers.runtime import check_docker_available
from ..lib.core.config import ConfigResolver, get_resolver
from ..lib.core.errors import RunnerCtlError
from ..lib.core.images import ImageDefinition, discover, image_groups
from ..lib.core.paths import config_file_path, images_root, repo_root, state_root
from ..lib.core.selectors import ALL_TOKEN, filter_catalog
from ..lib.orchestration.cleanup import clean_local_images
from ..lib.orchestration.coordinator import RunCoordinator, RunOptions
from ..lib.orchestration.report import (
    ResultLog,
    RunSummary,
    github_outputs,
    print_summary,
    write_github_outputs,
)
from ..ui_utils.terminal import (
    confirm,
    gray as _gray,
    header,
    info,
    supports_color as _supports_color,
    yes_no as _yes_no,
)

# Optional: bash completion via argcomplete
try:
    import argcomplete  # type: ignore
except Exception:  # pragma: no cover - optional dep
    argcomplete = None  # type: ignore


def _complete_selectors(prefix: str, parsed_args, **kwargs):  # pragma: no cover - shell integration
    try:
        catalog = discover(images_root(repo_root(getattr(parsed_args, "repo_root", None))))
    except Exception:
        return []
    tokens = [ALL_TOKEN, *image_groups(catalog), *(d.name for d in catalog)]
    if prefix:
        tokens = [t for t in tokens if t.startswith(prefix)]
    return tokens


def _load_catalog(root: Path) -> list[ImageDefinition]:
    return discover(images_root(root))


def _print_images(catalog: list[ImageDefinition]) -> None:
    color_enabled = _supports_color()
    print("Available images:")
    for definition in catalog:
        suffix = " (foundational)" if definition.is_foundational else ""
        print(f"  - {definition.name}{_gray(suffix, color_enabled)}")
    groups = image_groups(catalog)
    if groups:
        print()
        print("Image groups:")
        for group in groups:
            print(f"  - {group}")


def _print_build_usage(catalog: list[ImageDefinition]) -> None:
    print("Usage: runnerctl build [SELECTOR ...] [options]")
    print()
    print("Selectors are exact image names, group prefixes, or 'all'.")
    print()
    _print_images(catalog)
    print()
    print("Examples:")
    print("  runnerctl build all")
    print("  runnerctl build dotnet")
    print("  runnerctl build base dotnet-8 --skip-tests")


def _print_run_options(options: RunOptions) -> None:
    color_enabled = _supports_color()
    print(f"- Cache: {_yes_no(options.use_cache, color_enabled)}")
    print(f"- Tests: {_yes_no(options.run_tests, color_enabled)}")
    print(f"- Smoke tests: {_yes_no(options.run_smoke, color_enabled)}")
    print(f"- Integration tests: {_yes_no(options.run_integration, color_enabled)}")
    print(f"- Remote base: {_yes_no(options.use_remote_base, color_enabled)}")


def _result_log(path: str | None) -> ResultLog | None:
    return ResultLog(Path(path)) if path else None


def _finish(summary: RunSummary) -> None:
    print_summary(summary)
    write_github_outputs(github_outputs(summary))
    if summary.exit_code:
        raise SystemExit(summary.exit_code)


def _cmd_clean(assume_yes: bool) -> None:
    check_docker_available()
    code = clean_local_images(confirm, assume_yes=assume_yes)
    if code:
        raise SystemExit(code)


def _cmd_build(args: argparse.Namespace, root: Path) -> None:
    if args.clean:
        _cmd_clean(args.yes)
        return

    catalog = _load_catalog(root)
    if not args.selectors:
        _print_build_usage(catalog)
        return

    selected = filter_catalog(catalog, args.selectors)
    resolver = get_resolver(root)
    check_docker_available()

    options = RunOptions(
        use_cache=not args.no_cache,
        run_tests=not args.skip_tests,
        run_smoke=not args.skip_smoke,
        run_integration=not args.skip_integration,
        use_remote_base=args.remote_base,
    )
    header("CI Runner Images - Build")
    _print_run_options(options)

    coordinator = RunCoordinator(resolver, root, options, result_log=_result_log(args.results_log))
    _finish(coordinator.run(selected))


def _cmd_test(args: argparse.Namespace, root: Path) -> None:
    catalog = _load_catalog(root)
    explicit = bool(args.image) and args.image != ALL_TOKEN
    selected = filter_catalog(catalog, [args.image] if explicit else [])
    resolver = get_resolver(root)
    check_docker_available()

    options = RunOptions(
        run_smoke=not args.skip_smoke,
        run_integration=not args.skip_integration,
    )
    header("CI Runner Images - Test")
    coordinator = RunCoordinator(resolver, root, options, result_log=_result_log(args.results_log))
    _finish(coordinator.verify_existing(selected, explicit=explicit))


def _cmd_config(args: argparse.Namespace, root: Path) -> None:
    if args.config_cmd == "show":
        _print_config(root)
        return

    resolver: ConfigResolver = get_resolver(root)
    if args.config_cmd == "get":
        print(resolver.get(args.key, args.default))
    elif args.config_cmd == "registry-path":
        print(resolver.registry_path())
    elif args.config_cmd == "image-name":
        print(resolver.image_name(args.folder))
    elif args.config_cmd == "full-tag":
        print(resolver.full_tag(args.folder, args.tag))
    elif args.config_cmd == "base-ubuntu":
        print(resolver.base_ubuntu())
    elif args.config_cmd == "base-runner":
        print(resolver.base_runner())
    elif args.config_cmd == "action-version":
        print(resolver.action_version(args.tool))


def _print_config(root: Path) -> None:
    """Display resolved paths and the effective configuration values."""
    color_enabled = _supports_color()
    cfg = config_file_path(root)
    imgs = images_root(root)
    print("Paths:")
    print(f"- Repository root: {_gray(str(root), color_enabled)}")
    print(
        f"- Config file: {_gray(str(cfg), color_enabled)} "
        f"(exists: {_yes_no(cfg.is_file(), color_enabled)})"
    )
    print(
        f"- Images root: {_gray(str(imgs), color_enabled)} "
        f"(exists: {_yes_no(imgs.is_dir(), color_enabled)})"
    )
    print(f"- State dir (debug log): {_gray(str(state_root()), color_enabled)}")

    if not cfg.is_file():
        return

    resolver = get_resolver(root)
    timeouts = resolver.timeouts
    print()
    print("Configuration:")
    print(f"- Registry path: {resolver.registry_path()}")
    print(f"- Base ubuntu: {resolver.base_ubuntu()}")
    print(f"- Base runner: {resolver.base_runner()}")
    print(f"- Platform: {resolver.settings.naming.platform}")
    print(
        f"- Timeouts (s): build={timeouts.build} check={timeouts.check} "
        f"integration={timeouts.integration}"
    )
    actions = resolver.settings.actions
    if actions:
        print("- Actions:")
        for tool, version in sorted(actions.items()):
            print(f"  • {tool}: {version}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runnerctl",
        description="runnerctl – build and verify CI runner container images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Quick start:\n"
            "  runnerctl images                 (list images and groups)\n"
            "  runnerctl build all              (build base, then every other image)\n"
            "  runnerctl build dotnet           (build one group against the local base)\n"
            "  runnerctl test dotnet-8          (verify an already built image)\n"
            "  runnerctl clean                  (remove local-test-* images)\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"runnerctl {__version__}")
    parser.add_argument(
        "--repo-root",
        help="Repository root holding config.yml and images/ (default: auto-detect)",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    # images
    sub.add_parser("images", help="List discovered images and group selectors")

    # build
    p_build = sub.add_parser("build", help="Build (and verify) selected images")
    _a = p_build.add_argument(
        "selectors",
        nargs="*",
        metavar="SELECTOR",
        help="Image name, group prefix, or 'all'",
    )
    try:
        _a.completer = _complete_selectors  # type: ignore[attr-defined]
    except Exception:
        pass  # argcomplete not available or completer attribute not supported
    p_build.add_argument("--no-cache", action="store_true", help="Build without layer cache")
    p_build.add_argument("--skip-tests", action="store_true", help="Do not verify built images")
    p_build.add_argument("--skip-smoke", action="store_true", help="Skip the smoke test tier")
    p_build.add_argument(
        "--skip-integration", action="store_true", help="Skip the integration test tier"
    )
    p_build.add_argument(
        "--remote-base",
        action="store_true",
        help="Use the registry base image even if a local one exists",
    )
    p_build.add_argument(
        "--clean", action="store_true", help="Remove local test images instead of building"
    )
    p_build.add_argument("--yes", action="store_true", help="Do not ask before cleaning")
    p_build.add_argument("--results-log", help="Append '<image>:<passed|failed>' lines here")

    # test
    p_test = sub.add_parser("test", help="Verify already built local images")
    _a = p_test.add_argument("image", nargs="?", help="Image name (default: all)")
    try:
        _a.completer = _complete_selectors  # type: ignore[attr-defined]
    except Exception:
        pass  # argcomplete not available or completer attribute not supported
    p_test.add_argument("--skip-smoke", action="store_true", help="Skip the smoke test tier")
    p_test.add_argument(
        "--skip-integration", action="store_true", help="Skip the integration test tier"
    )
    p_test.add_argument("--results-log", help="Append '<image>:<passed|failed>' lines here")

    # clean
    p_clean = sub.add_parser("clean", help="Remove local-test-* images")
    p_clean.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    # config
    p_config = sub.add_parser("config", help="Query the repository configuration")
    csub = p_config.add_subparsers(dest="config_cmd", required=True)
    c_get = csub.add_parser("get", help="Print the value at a dotted key path")
    c_get.add_argument("key")
    c_get.add_argument("default", nargs="?")
    csub.add_parser("registry-path", help="Print <url>/<owner>/<repository>")
    c_name = csub.add_parser("image-name", help="Print the published name of an image folder")
    c_name.add_argument("folder")
    c_tag = csub.add_parser("full-tag", help="Print the registry reference of an image folder")
    c_tag.add_argument("folder")
    c_tag.add_argument("tag", nargs="?", default="latest")
    csub.add_parser("base-ubuntu", help="Print the upstream OS image")
    csub.add_parser("base-runner", help="Print the remote foundational image")
    c_action = csub.add_parser("action-version", help="Print a pinned GitHub Action version")
    c_action.add_argument("tool")
    csub.add_parser("show", help="Show paths and effective configuration")

    return parser


def main() -> None:
    parser = _build_parser()

    # Enable bash completion if argcomplete is present and activated
    if argcomplete is not None:  # pragma: no cover - shell integration
        try:
            argcomplete.autocomplete(parser)  # type: ignore[attr-defined]
        except Exception:
            pass

    args = parser.parse_args()

    try:
        root = repo_root(args.repo_root)
        if args.cmd == "images":
            catalog = _load_catalog(root)
            header(f"Images in {images_root(root)}")
            _print_images(catalog)
            info(f"{len(catalog)} image(s)")
        elif args.cmd == "build":
            _cmd_build(args, root)
        elif args.cmd == "test":
            _cmd_test(args, root)
        elif args.cmd == "clean":
            _cmd_clean(args.yes)
        elif args.cmd == "config":
            _cmd_config(args, root)
        else:
            parser.error("Unknown command")
    except RunnerCtlError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
