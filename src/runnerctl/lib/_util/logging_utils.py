"""Utility functions for logging."""


def _log_debug(message: str) -> None:
    """Append a timestamped line to ``state_root()/runnerctl.log``.

    Callers: ``run_command`` logs every engine invocation with its timeout,
    exit status and duration; ``build_image`` logs the full buildx command;
    the smoke and integration tiers log each check's exit status and
    trimmed output; the coordinator logs every run-state transition and
    environment fault; cleanup logs its removed/failed counts.

    Nothing is printed and IO errors are ignored.
    """
    try:
        import time

        from ..core.paths import state_root

        log_path = state_root() / "runnerctl.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] {message}\n")
    except Exception:
        pass
