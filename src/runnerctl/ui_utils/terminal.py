"""Terminal ANSI formatting helpers.

Core color functions and status line printers are defined in
``runnerctl.lib._util.ansi`` so that service-layer modules can use them
without a cross-layer dependency. This module re-exports them and adds
interactive helpers.
"""

from runnerctl.lib._util.ansi import (  # noqa: F401  -- re-exports
    blue,
    color,
    error,
    green,
    header,
    info,
    red,
    success,
    supports_color,
    warning,
    yellow,
)

CONFIRM_TOKENS = ("yes", "y")


def yes_no(value: bool, enabled: bool) -> str:
    """Return green ``"yes"`` or red ``"no"`` based on *value* when *enabled*."""
    return color("yes" if value else "no", "32" if value else "31", enabled)


def gray(text: str, enabled: bool) -> str:
    """Return *text* in gray (ANSI 90) when *enabled*."""
    return color(text, "90", enabled)


def is_confirmation(answer: str | None) -> bool:
    """True only for ``yes``/``y`` (any case); everything else cancels."""
    return (answer or "").strip().lower() in CONFIRM_TOKENS


def confirm(question: str) -> bool:
    """Ask a yes/no question on stdin; EOF or Ctrl+C count as "no"."""
    try:
        answer = input(f"{question} (yes/no): ")
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return is_confirmation(answer)
