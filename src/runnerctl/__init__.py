"""runnerctl package.

Modules:
- runnerctl.cli: CLI entry point package (runnerctl)
- runnerctl.lib.core: Configuration, paths, image catalog, selectors, errors
- runnerctl.lib.containers: Container engine calls, builds, verification tiers
- runnerctl.lib.orchestration: Run coordination, reporting, local image cleanup
- runnerctl.lib._util: Internal helpers (fs, ansi, logging)
- runnerctl.ui_utils: Terminal output helpers
"""

__all__ = [
    "cli",
    "lib",
    "ui_utils",
]

# Version information - single source of truth using importlib.metadata
try:
    from importlib.metadata import version

    __version__ = version("runnerctl")
except Exception:
    # Fallback for development mode when package is not installed
    try:
        import tomllib
        from pathlib import Path

        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            with open(pyproject_path, "rb") as f:
                pyproject_data = tomllib.load(f)
                __version__ = pyproject_data["project"]["version"]
        else:
            __version__ = "unknown"
    except Exception:
        __version__ = "unknown"
