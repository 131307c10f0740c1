"""!
@brief Confirmation prompt for destructive runs.
@details Interactive consoles are asked once before a live purge. RMM agents
run without a TTY, so non-interactive sessions, preview runs and ``--yes``
all proceed without prompting.
"""

from __future__ import annotations

import sys
from typing import Callable

CONFIRM_PROMPT = (
    "This will back up and remove locally cached Group Policy and MDM policy "
    "state from this machine. Continue? (Y/n)"
)


def request_confirmation(
    *,
    dry_run: bool,
    assume_yes: bool,
    input_func: Callable[[str], str] | None = None,
    interactive: bool | None = None,
) -> bool:
    """!
    @brief Ask the operator to confirm a live run.
    @param dry_run Whether the pending execution is a preview.
    @param assume_yes Whether the caller supplied ``--yes``.
    @param input_func Optional input function override.
    @param interactive Optional override for TTY detection.
    @returns ``True`` when the run should proceed.
    """

    if dry_run or assume_yes:
        return True

    if interactive is None:
        stdin = getattr(sys, "stdin", None)
        isatty = getattr(stdin, "isatty", None)
        interactive = bool(isatty and isatty())

    if not interactive:
        return True

    if input_func is None:
        input_func = input

    try:
        response = input_func(f"{CONFIRM_PROMPT} ")
    except EOFError:
        return False

    return response.strip().lower() in ("", "y", "yes")


__all__ = ["CONFIRM_PROMPT", "request_confirmation"]
