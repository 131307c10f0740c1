"""!
@brief Structured logging helpers for Policy Purge.
@details Implements the dual-stream pipeline: a human-readable channel written
to a rotating text file and the console (which is what the RMM agent captures),
and a JSONL telemetry channel for automation. A ``SUCCESS`` level sits between
``INFO`` and ``WARNING`` so operators can spot completed removals at a glance.
Startup metadata sourced from :mod:`policy_purge.version` is recorded so log
bundles from many machines can be correlated.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import sys
import uuid
from logging import handlers
from pathlib import Path
from typing import Dict, Iterable, Mapping, Tuple

from . import version

HUMAN_LOGGER_NAME = "policy_purge.human"
"""!
@brief Logger name for human-readable output.
"""

MACHINE_LOGGER_NAME = "policy_purge.machine"
"""!
@brief Logger name for JSONL telemetry output.
"""

SUCCESS = 25
"""!
@brief Numeric level for the ``SUCCESS`` log level.
"""

logging.addLevelName(SUCCESS, "SUCCESS")

DRY_RUN_MARKER = "[dry-run]"
"""!
@brief Suffix the human channel adds to lines logged during a preview run.
"""

_STANDARD_RECORD_KEYS: Dict[str, None] = {
    "name": None,
    "msg": None,
    "args": None,
    "levelname": None,
    "levelno": None,
    "pathname": None,
    "filename": None,
    "module": None,
    "exc_info": None,
    "exc_text": None,
    "stack_info": None,
    "lineno": None,
    "funcName": None,
    "created": None,
    "msecs": None,
    "relativeCreated": None,
    "thread": None,
    "threadName": None,
    "processName": None,
    "process": None,
    "taskName": None,
    "message": None,
    "asctime": None,
    "channel": None,
}

_CURRENT_LOG_DIRECTORY: Path | None = None
_RUN_METADATA: Dict[str, object] | None = None


class _ChannelFilter(logging.Filter):
    """!
    @brief Inject a fixed ``channel`` attribute on log records.
    """

    def __init__(self, channel: str) -> None:
        super().__init__()
        self._channel = channel

    def filter(self, record: logging.LogRecord) -> bool:
        record.channel = self._channel
        return True


class _JsonLineFormatter(logging.Formatter):
    """!
    @brief Format ``LogRecord`` instances as single-line JSON objects.
    @details Standard metadata (timestamp, level, logger, message) is merged
    with any ``extra`` attributes supplied by the caller. Values that are not
    JSON serializable are coerced to their ``repr``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - concise override
        moment = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
        payload: Dict[str, object] = {
            "timestamp": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", "machine"),
        }

        payload.update(_extract_extras(record))
        try:
            return json.dumps(payload, ensure_ascii=False)
        except TypeError:
            sanitized = {key: _coerce_json(value) for key, value in payload.items()}
            return json.dumps(sanitized, ensure_ascii=False)


class _HumanFormatter(logging.Formatter):
    """!
    @brief Plain-text formatter that tags preview-run records.
    @details Records carrying a truthy ``dry_run`` attribute get
    :data:`DRY_RUN_MARKER` appended, so the message itself stays identical
    between preview and live runs.
    """

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if getattr(record, "dry_run", False):
            text = f"{text} {DRY_RUN_MARKER}"
        return text


def _extract_extras(record: logging.LogRecord) -> Dict[str, object]:
    extras: Dict[str, object] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_RECORD_KEYS:
            continue
        extras[key] = value
    return extras


def _coerce_json(value: object) -> object:
    try:
        json.dumps(value)
    except TypeError:
        return repr(value)
    return value


def _configure_logger(
    logger: logging.Logger,
    formatter: logging.Formatter,
    handlers_to_add: Iterable[logging.Handler],
) -> None:
    """!
    @brief Reset a logger and attach the supplied handlers.
    """

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for flt in list(logger.filters):
        logger.removeFilter(flt)
    for handler in handlers_to_add:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False


def build_event_extra(event: str, **fields: object) -> Dict[str, object]:
    """!
    @brief Build an ``extra`` mapping for machine-channel records.
    @param event Stable event identifier.
    @param fields Additional structured attributes.
    """

    payload: Dict[str, object] = {"event": event}
    payload.update(fields)
    return payload


def setup_logging(
    root_dir: Path,
    *,
    json_to_stdout: bool = False,
    console: bool = True,
    level: int = logging.INFO,
) -> Tuple[logging.Logger, logging.Logger]:
    """!
    @brief Set up human and machine loggers.
    @details Creates ``root_dir`` if needed and attaches rotating handlers for
    both streams. The human channel is mirrored to ``stderr`` unless
    ``console`` is ``False``.
    @returns ``(human_logger, machine_logger)``.
    """

    global _CURRENT_LOG_DIRECTORY

    root_dir.mkdir(parents=True, exist_ok=True)
    _CURRENT_LOG_DIRECTORY = root_dir

    human_logger = logging.getLogger(HUMAN_LOGGER_NAME)
    machine_logger = logging.getLogger(MACHINE_LOGGER_NAME)

    human_logger.setLevel(level)
    machine_logger.setLevel(level)

    human_formatter = _HumanFormatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    machine_formatter = _JsonLineFormatter()

    human_file = handlers.RotatingFileHandler(
        root_dir / "policy-purge.log",
        maxBytes=1_048_576,
        backupCount=5,
        encoding="utf-8",
    )
    machine_file = handlers.RotatingFileHandler(
        root_dir / "policy-purge.jsonl",
        maxBytes=1_048_576,
        backupCount=5,
        encoding="utf-8",
    )

    human_handlers: list[logging.Handler] = [human_file]
    if console:
        human_handlers.append(logging.StreamHandler(stream=sys.stderr))

    machine_handlers: list[logging.Handler] = [machine_file]
    if json_to_stdout:
        machine_handlers.append(logging.StreamHandler(stream=sys.stdout))

    _configure_logger(human_logger, human_formatter, human_handlers)
    _configure_logger(machine_logger, machine_formatter, machine_handlers)

    human_logger.addFilter(_ChannelFilter("human"))
    machine_logger.addFilter(_ChannelFilter("machine"))

    _emit_run_metadata(human_logger, machine_logger)

    return human_logger, machine_logger


def get_human_logger() -> logging.Logger:
    """!
    @brief Retrieve the configured human-readable logger.
    """

    return logging.getLogger(HUMAN_LOGGER_NAME)


def get_machine_logger() -> logging.Logger:
    """!
    @brief Retrieve the configured machine/JSON logger.
    """

    return logging.getLogger(MACHINE_LOGGER_NAME)


def get_log_directory() -> Path | None:
    """!
    @brief Return the most recently configured log directory, if any.
    """

    return _CURRENT_LOG_DIRECTORY


def get_run_metadata() -> Mapping[str, object] | None:
    """!
    @brief Return the most recent run metadata payload.
    @details Contains ``run_id`` (UUID4 hex), ``timestamp`` in ISO-8601 UTC
    form, and the version/build identifiers.
    """

    return dict(_RUN_METADATA) if _RUN_METADATA is not None else None


def _emit_run_metadata(human_logger: logging.Logger, machine_logger: logging.Logger) -> None:
    global _RUN_METADATA

    moment = _dt.datetime.now(tz=_dt.timezone.utc)
    _RUN_METADATA = {
        "run_id": uuid.uuid4().hex,
        "timestamp": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "version": version.__version__,
        "build": version.__build__,
        "python": sys.version.split()[0],
        "logdir": str(_CURRENT_LOG_DIRECTORY) if _CURRENT_LOG_DIRECTORY else None,
    }

    human_logger.info(
        "Policy Purge %s (%s) starting, run %s",
        version.__version__,
        version.__build__,
        _RUN_METADATA["run_id"],
    )
    if _CURRENT_LOG_DIRECTORY is not None:
        human_logger.info("Logs directory: %s", _CURRENT_LOG_DIRECTORY)

    machine_logger.info("run_start", extra=build_event_extra("run_start", run=dict(_RUN_METADATA)))


__all__ = [
    "DRY_RUN_MARKER",
    "HUMAN_LOGGER_NAME",
    "MACHINE_LOGGER_NAME",
    "SUCCESS",
    "build_event_extra",
    "get_human_logger",
    "get_log_directory",
    "get_machine_logger",
    "get_run_metadata",
    "setup_logging",
]
