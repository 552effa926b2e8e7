from pathlib import Path


def ensure_dir(path: Path) -> None:
    """Create a directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)


def truncate_file(path: Path) -> None:
    """Create *path* (and its parent directory) as an empty file."""
    ensure_dir(path.parent)
    path.write_text("", encoding="utf-8")


def append_line(path: Path, line: str) -> None:
    """Append one newline-terminated *line* to *path*."""
    ensure_dir(path.parent)
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(f"{line}\n")
