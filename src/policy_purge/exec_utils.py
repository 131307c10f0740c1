"""!
@brief Subprocess execution helpers with sanitised environments.
@details Centralises invocation of :func:`subprocess.run` for ``reg.exe``,
``dsregcmd.exe`` and ``gpupdate.exe`` so every external call emits the same
``*_plan``/``*_result`` telemetry and runs with an environment stripped of
Python virtual-environment variables. Dry-run handling is deliberately absent
here: mutating commands reach this module only through
:class:`policy_purge.dry_run.DryRunGate`.
"""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from typing import Any

from . import logging_ext

_SANITIZE_BLOCKLIST = {
    "PYTHONPATH",
    "PYTHONHOME",
    "PYTHONWARNINGS",
    "VIRTUAL_ENV",
    "PIP_REQUIRE_VIRTUALENV",
    "CONDA_PREFIX",
    "CONDA_DEFAULT_ENV",
    "PYENV_VERSION",
    "POETRY_ACTIVE",
    "__PYVENV_LAUNCHER__",
}


@dataclass
class CommandResult:
    """!
    @brief Outcome information from :func:`run_command`.
    @details ``skipped`` is ``True`` when the dry-run gate short-circuited the
    invocation. ``timed_out`` is ``True`` when the global timeout elapsed.
    """

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    duration: float
    skipped: bool = False
    timed_out: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


_GLOBAL_TIMEOUT: float | None = None


def set_global_timeout(timeout_seconds: float | int | None) -> None:
    """!
    @brief Apply a global timeout cap for all subprocess calls.
    @details Backs the CLI ``--timeout`` flag. Values that are missing, not
    numeric or not positive clear the cap.
    """

    global _GLOBAL_TIMEOUT
    if timeout_seconds is None:
        _GLOBAL_TIMEOUT = None
        return
    try:
        parsed = float(timeout_seconds)
    except (TypeError, ValueError):
        _GLOBAL_TIMEOUT = None
    else:
        _GLOBAL_TIMEOUT = parsed if parsed > 0 else None


def _resolve_timeout(requested: float | int | None) -> float | int | None:
    if _GLOBAL_TIMEOUT is None:
        return requested
    if requested is None:
        return _GLOBAL_TIMEOUT
    return min(_GLOBAL_TIMEOUT, requested)


def _build_call_payload(
    command_list: Sequence[str],
    *,
    timeout: float | int | None,
    extra: Mapping[str, object] | None,
) -> MutableMapping[str, object]:
    payload: MutableMapping[str, object] = {
        "command": list(command_list),
        "timeout": timeout,
    }
    if extra:
        for key, value in extra.items():
            if key not in {"event", "result"}:
                payload[key] = value
    return payload


def _build_result_payload(
    *,
    return_code: int,
    duration: float,
    stdout: str,
    stderr: str,
    error: str | None = None,
    timed_out: bool = False,
) -> dict[str, object]:
    return {
        "rc": return_code,
        "duration_ms": round(duration * 1000, 3),
        "stdout": stdout,
        "stderr": stderr,
        "error": error,
        "timed_out": timed_out,
    }


def sanitize_environment(*, base_env: Mapping[str, str] | None = None) -> MutableMapping[str, str]:
    """!
    @brief Produce a subprocess environment stripped of virtualenv artefacts.
    @param base_env Source mapping to copy prior to sanitisation; the host
    environment when ``None``.
    @returns Mutable mapping ready for subprocess invocation.
    """

    source = os.environ if base_env is None else base_env
    environment: MutableMapping[str, str] = {str(k): str(v) for k, v in source.items() if v is not None}

    for key in _SANITIZE_BLOCKLIST:
        environment.pop(key, None)

    return environment


def skipped_result(command: Sequence[str]) -> CommandResult:
    """!
    @brief Build the synthetic success result reported for gated commands.
    """

    return CommandResult(
        command=[str(part) for part in command],
        returncode=0,
        stdout="",
        stderr="",
        duration=0.0,
        skipped=True,
    )


def run_command(
    command: Sequence[str],
    *,
    event: str,
    timeout: int | float | None = None,
    extra: Mapping[str, object] | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """!
    @brief Execute ``command`` with consistent logging and environment hygiene.
    @details Emits ``*_plan`` and ``*_result`` machine-log events. Launch
    failures (missing executable, timeout, ``OSError``) are converted into a
    failed :class:`CommandResult` instead of propagating, so callers only ever
    consult ``returncode``.
    @param command Sequence of command arguments.
    @param event Base name for structured log events.
    @param timeout Optional timeout (seconds), capped by the global timeout.
    @param extra Additional metadata merged into machine log payloads.
    @param env Explicit environment mapping to start from prior to sanitisation.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    command_list = [str(part) for part in command]
    effective_timeout: Any = _resolve_timeout(timeout)
    call = _build_call_payload(command_list, timeout=effective_timeout, extra=extra)

    machine_logger.info(f"{event}_plan", extra={"event": f"{event}_plan", "call": dict(call)})

    start = time.monotonic()
    try:
        completed = subprocess.run(  # noqa: S603 - intentional command execution
            command_list,
            capture_output=True,
            text=True,
            timeout=effective_timeout,
            check=False,
            env=sanitize_environment(base_env=env),
        )
    except FileNotFoundError as exc:
        duration = time.monotonic() - start
        human_logger.error("Command not found: %s", command_list[0])
        machine_logger.error(
            f"{event}_missing",
            extra={
                "event": f"{event}_missing",
                "call": dict(call),
                "result": _build_result_payload(
                    return_code=127, duration=duration, stdout="", stderr="", error=str(exc)
                ),
            },
        )
        return CommandResult(
            command=command_list,
            returncode=127,
            stdout="",
            stderr="",
            duration=duration,
            error=str(exc),
        )
    except subprocess.TimeoutExpired as exc:
        duration = time.monotonic() - start
        human_logger.error("Command timed out after %.1fs: %s", duration, command_list[0])
        machine_logger.error(
            f"{event}_timeout",
            extra={
                "event": f"{event}_timeout",
                "call": dict(call),
                "result": _build_result_payload(
                    return_code=1,
                    duration=duration,
                    stdout=str(exc.stdout or ""),
                    stderr=str(exc.stderr or ""),
                    error="timeout",
                    timed_out=True,
                ),
            },
        )
        return CommandResult(
            command=command_list,
            returncode=1,
            stdout=str(exc.stdout or ""),
            stderr=str(exc.stderr or ""),
            duration=duration,
            timed_out=True,
            error="timeout",
        )
    except OSError as exc:
        duration = time.monotonic() - start
        human_logger.error("Failed to execute %s: %s", command_list[0], exc)
        machine_logger.error(
            f"{event}_error",
            extra={
                "event": f"{event}_error",
                "call": dict(call),
                "result": _build_result_payload(
                    return_code=1, duration=duration, stdout="", stderr="", error=str(exc)
                ),
            },
        )
        return CommandResult(
            command=command_list,
            returncode=1,
            stdout="",
            stderr="",
            duration=duration,
            error=str(exc),
        )

    duration = time.monotonic() - start
    machine_logger.info(
        f"{event}_result",
        extra={
            "event": f"{event}_result",
            "call": dict(call),
            "result": _build_result_payload(
                return_code=completed.returncode,
                duration=duration,
                stdout=str(completed.stdout),
                stderr=str(completed.stderr),
            ),
        },
    )

    return CommandResult(
        command=command_list,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration=duration,
    )


__all__ = [
    "CommandResult",
    "run_command",
    "sanitize_environment",
    "set_global_timeout",
    "skipped_result",
]
