"""!
@brief Single decision point for dry-run behaviour.
@details Every mutating primitive used by the engine (directory creation,
recursive copy, recursive delete, rename, external command, settle wait) is a
method of :class:`DryRunGate`. Each one logs its intent line through
:meth:`DryRunGate.guard` and only performs the action when the run is live.
In a preview run the same line is logged, tagged with the dry-run marker, and
a success value is returned with no side effects. Higher-level components
never test ``ctx.dry_run`` themselves.

Live primitives raise ``OSError`` on failure; callers translate that into a
log entry and a continue/abort decision.
"""
from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Mapping, Sequence, TypeVar

from . import exec_utils, fs_tools
from .context import RunContext

T = TypeVar("T")


class DryRunGate:
    """!
    @brief Wraps mutating primitives with the run's dry-run decision.
    @param ctx Run context supplying the dry-run flag and the log.
    @param sleeper Callable used for settle waits (``time.sleep`` by default).
    """

    def __init__(self, ctx: RunContext, *, sleeper: Callable[[float], None] | None = None) -> None:
        self._ctx = ctx
        self._sleeper = sleeper

    @property
    def ctx(self) -> RunContext:
        return self._ctx

    def guard(self, action: Callable[[], T], *, describe: str, dry_value: T, **fields: object) -> T:
        """!
        @brief Log ``describe`` and run ``action`` unless the run is a preview.
        @returns ``action()`` for live runs, ``dry_value`` otherwise.
        """

        dry_run = self._ctx.dry_run
        self._ctx.info(describe, dry_run=dry_run, event="mutation", **fields)
        if dry_run:
            return dry_value
        return action()

    def make_directory(self, path: Path) -> bool:
        def _create() -> bool:
            fs_tools.make_directory(path)
            return True

        return self.guard(_create, describe=f"Creating directory {path}", dry_value=True, path=str(path))

    def copy_tree(self, source: Path, destination: Path) -> bool:
        def _copy() -> bool:
            fs_tools.copy_tree(source, destination)
            return True

        return self.guard(
            _copy,
            describe=f"Copying {source} to {destination}",
            dry_value=True,
            source=str(source),
            destination=str(destination),
        )

    def delete_tree(self, path: Path) -> bool:
        def _delete() -> bool:
            fs_tools.delete_tree(path)
            return True

        return self.guard(_delete, describe=f"Deleting {path}", dry_value=True, path=str(path))

    def rename(self, source: Path, destination: Path) -> bool:
        def _rename() -> bool:
            fs_tools.rename(source, destination)
            return True

        return self.guard(
            _rename,
            describe=f"Renaming {source} to {destination}",
            dry_value=True,
            source=str(source),
            destination=str(destination),
        )

    def run(
        self,
        command: Sequence[str],
        *,
        event: str,
        extra: Mapping[str, object] | None = None,
    ) -> exec_utils.CommandResult:
        """!
        @brief Run a mutating external command.
        @details Launch failures never raise; they surface as a non-zero
        ``returncode`` on the returned :class:`exec_utils.CommandResult`.
        """

        command_list = [str(part) for part in command]
        return self.guard(
            lambda: exec_utils.run_command(command_list, event=event, extra=extra),
            describe="Running: " + " ".join(command_list),
            dry_value=exec_utils.skipped_result(command_list),
            command=command_list,
        )

    def wait(self, seconds: float, *, reason: str) -> bool:
        """!
        @brief Block for ``seconds``; skipped in preview runs.
        """

        def _sleep() -> bool:
            (self._sleeper or time.sleep)(seconds)
            return True

        return self.guard(
            _sleep,
            describe=f"Waiting {seconds:g} seconds {reason}",
            dry_value=True,
            seconds=seconds,
        )


__all__ = ["DryRunGate"]
