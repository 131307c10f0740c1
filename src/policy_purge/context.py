"""!
@brief Per-invocation run state.
@details :class:`RunContext` carries everything one run shares between
components: the backup root, the immutable run flags, the ordered log and the
accumulated failures. It is created once by the entry point and passed
explicitly to every component; nothing here is module-global, so tests build a
fresh context per case.
"""
from __future__ import annotations

import datetime as _dt
import enum
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from . import constants, fs_tools, logging_ext
from .models import BackupRecord, Scope


class LogLevel(enum.Enum):
    """!
    @brief Operator-facing log levels.
    """

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"

    @property
    def logging_level(self) -> int:
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.SUCCESS: logging_ext.SUCCESS,
}

DRY_RUN_MARKER = logging_ext.DRY_RUN_MARKER


@dataclass(frozen=True)
class LogEntry:
    """!
    @brief One timestamped, leveled line of the run log.
    """

    timestamp: _dt.datetime
    level: LogLevel
    message: str
    dry_run: bool = False

    def format(self) -> str:
        line = f"{self.timestamp:%Y-%m-%d %H:%M:%S} [{self.level.value}] {self.message}"
        return f"{line} {DRY_RUN_MARKER}" if self.dry_run else line


def compute_backup_root(base: str | os.PathLike[str], *, now: _dt.datetime | None = None) -> Path:
    """!
    @brief Derive the run-scoped backup directory under ``base``.
    @details The directory name combines :data:`constants.BACKUP_ROOT_PREFIX`
    with an ISO-8601-like local timestamp; colons are replaced because they are
    not valid in Windows paths.
    """

    moment = now or _dt.datetime.now()
    return fs_tools.resolve_path(base) / f"{constants.BACKUP_ROOT_PREFIX}_{moment:%Y-%m-%dT%H-%M-%S}"


class RunContext:
    """!
    @brief Shared state for a single invocation.
    @details ``dry_run``, ``skip_reconciliation`` and ``unenroll_requested``
    are read-only once constructed. ``log``, ``failed_targets``,
    ``backup_records``, ``aborted_scopes`` and ``leave_failures`` accumulate
    as the run progresses and are what wrapping callers should inspect instead
    of parsing log text.
    """

    def __init__(
        self,
        backup_root: Path,
        *,
        dry_run: bool = False,
        skip_reconciliation: bool = False,
        unenroll_requested: bool = False,
        settle_seconds: float = constants.DEFAULT_SETTLE_SECONDS,
        human_logger: logging.Logger | None = None,
        machine_logger: logging.Logger | None = None,
    ) -> None:
        self._backup_root = Path(backup_root)
        self._dry_run = bool(dry_run)
        self._skip_reconciliation = bool(skip_reconciliation)
        self._unenroll_requested = bool(unenroll_requested)
        self.settle_seconds = float(settle_seconds)
        self.log: List[LogEntry] = []
        self.backup_records: List[BackupRecord] = []
        self.aborted_scopes: List[Scope] = []
        self.leave_failures: List[str] = []
        self._failed: dict[str, None] = {}
        self._human = human_logger or logging_ext.get_human_logger()
        self._machine = machine_logger or logging_ext.get_machine_logger()

    @property
    def backup_root(self) -> Path:
        return self._backup_root

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def skip_reconciliation(self) -> bool:
        return self._skip_reconciliation

    @property
    def unenroll_requested(self) -> bool:
        return self._unenroll_requested

    @property
    def machine_logger(self) -> logging.Logger:
        return self._machine

    @property
    def failed_targets(self) -> Sequence[str]:
        """!
        @brief Display names of targets whose removal failed, in failure order.
        """

        return tuple(self._failed)

    def record_failure(self, display_name: str) -> None:
        self._failed.setdefault(display_name, None)

    def record_backup(self, record: BackupRecord) -> None:
        self.backup_records.append(record)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def emit(
        self,
        level: LogLevel,
        message: str,
        *args: object,
        dry_run: bool = False,
        event: str = "run_log",
        **fields: object,
    ) -> LogEntry:
        """!
        @brief Append an entry to the run log and forward it to both channels.
        @param dry_run Mark the entry as a preview of a mutation. The message
        text is unchanged; the human channel appends the dry-run marker.
        @param event Machine-channel event identifier.
        @param fields Structured attributes for the machine channel.
        """

        text = message % args if args else message
        entry = LogEntry(timestamp=_dt.datetime.now(), level=level, message=text, dry_run=dry_run)
        self.log.append(entry)

        self._human.log(level.logging_level, text, extra={"dry_run": dry_run})
        self._machine.log(
            level.logging_level,
            event,
            extra=logging_ext.build_event_extra(
                event,
                level=level.value,
                text=text,
                dry_run=dry_run,
                **fields,
            ),
        )
        return entry

    def info(self, message: str, *args: object, **kwargs: object) -> LogEntry:
        return self.emit(LogLevel.INFO, message, *args, **kwargs)  # type: ignore[arg-type]

    def warn(self, message: str, *args: object, **kwargs: object) -> LogEntry:
        return self.emit(LogLevel.WARN, message, *args, **kwargs)  # type: ignore[arg-type]

    def error(self, message: str, *args: object, **kwargs: object) -> LogEntry:
        return self.emit(LogLevel.ERROR, message, *args, **kwargs)  # type: ignore[arg-type]

    def success(self, message: str, *args: object, **kwargs: object) -> LogEntry:
        return self.emit(LogLevel.SUCCESS, message, *args, **kwargs)  # type: ignore[arg-type]

    def entries(self, level: LogLevel) -> List[LogEntry]:
        return [entry for entry in self.log if entry.level is level]


__all__ = [
    "DRY_RUN_MARKER",
    "LogEntry",
    "LogLevel",
    "RunContext",
    "compute_backup_root",
]
