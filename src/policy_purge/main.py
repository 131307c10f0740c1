"""!
@brief Command-line entry point for Policy Purge.
@details Parses the run flags, validates privileges, configures the
human/JSONL logging channels, builds the :class:`RunContext` and hands over to
:func:`policy_purge.engine.run`.

Exit codes: ``0`` clean run, ``1`` completed with failed targets or aborted
scopes, ``2`` fatal setup failure.
"""
from __future__ import annotations

import argparse
import logging
import pathlib
from typing import Iterable, Optional

from . import confirm, constants, elevation, engine, exec_utils, fs_tools, logging_ext, version
from .context import RunContext, compute_backup_root
from .reconcile import RunSummary

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


def build_arg_parser() -> argparse.ArgumentParser:
    """!
    @brief Create the argument parser.
    """

    parser = argparse.ArgumentParser(
        prog="policy-purge",
        description="Back up and remove locally cached Group Policy and MDM policy state.",
    )
    metadata = version.build_info()
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"{metadata['version']} ({metadata['build']})",
    )
    parser.add_argument(
        "--dry-run",
        "--whatif",
        dest="dry_run",
        action="store_true",
        help="Preview every change without modifying the system.",
    )
    parser.add_argument(
        "--skip-gpupdate",
        dest="skip_reconciliation",
        action="store_true",
        help="Do not run gpupdate /force after removal.",
    )
    parser.add_argument(
        "--unenroll-mdm",
        dest="unenroll",
        action="store_true",
        help="Unenroll the device from MDM before removing policies.",
    )
    parser.add_argument("--backup-dir", metavar="DIR", help="Base directory for the run's backup folder.")
    parser.add_argument("--logdir", metavar="DIR", help="Directory for human/JSONL log output.")
    parser.add_argument(
        "--settle-seconds",
        metavar="SEC",
        type=float,
        default=constants.DEFAULT_SETTLE_SECONDS,
        help="Seconds to wait after MDM unenrollment (default: %(default)s).",
    )
    parser.add_argument("--timeout", metavar="SEC", type=int, help="Per-command timeout in seconds.")
    parser.add_argument("--json", action="store_true", help="Mirror structured events to stdout.")
    parser.add_argument("--quiet", action="store_true", help="Only show errors on the console.")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not prompt for confirmation.")
    return parser


def _resolve_directory(candidate: Optional[str], default: pathlib.Path) -> pathlib.Path:
    if candidate:
        return fs_tools.resolve_path(candidate)
    return default


def _bootstrap_logging(args: argparse.Namespace) -> tuple[logging.Logger, logging.Logger]:
    logdir = _resolve_directory(args.logdir, fs_tools.get_default_log_directory())
    human_logger, machine_logger = logging_ext.setup_logging(logdir, json_to_stdout=bool(args.json))
    if args.quiet:
        for handler in human_logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.ERROR)
    return human_logger, machine_logger


def build_context(
    args: argparse.Namespace,
    human_logger: logging.Logger | None = None,
    machine_logger: logging.Logger | None = None,
) -> RunContext:
    """!
    @brief Translate parsed arguments into a :class:`RunContext`.
    """

    base = _resolve_directory(args.backup_dir, fs_tools.get_default_backup_base())
    return RunContext(
        compute_backup_root(base),
        dry_run=bool(args.dry_run),
        skip_reconciliation=bool(args.skip_reconciliation),
        unenroll_requested=bool(args.unenroll),
        settle_seconds=max(0.0, float(args.settle_seconds)),
        human_logger=human_logger,
        machine_logger=machine_logger,
    )


def exit_code_for(summary: RunSummary) -> int:
    return EXIT_OK if summary.clean else EXIT_FAILURES


def main(argv: Optional[Iterable[str]] = None) -> int:
    """!
    @brief Entry point for the ``policy-purge`` console script.
    @returns Process exit code integer.
    """

    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    human_log, machine_log = _bootstrap_logging(args)
    exec_utils.set_global_timeout(args.timeout)

    try:
        elevation.enforce_platform_guard(dry_run=args.dry_run)
        elevation.enforce_admin_guard(is_admin=elevation.is_admin(), dry_run=args.dry_run)
    except (PermissionError, RuntimeError) as exc:
        human_log.error("%s", exc)
        machine_log.error("preflight_failed", extra={"event": "preflight_failed", "error": str(exc)})
        return EXIT_FATAL

    if not confirm.request_confirmation(dry_run=args.dry_run, assume_yes=args.yes):
        human_log.info("Cancelled by operator.")
        return EXIT_OK

    ctx = build_context(args, human_log, machine_log)
    try:
        summary = engine.run(ctx)
    except engine.BackupRootError as exc:
        human_log.error("Aborting run: %s", exc)
        return EXIT_FATAL

    return exit_code_for(summary)


__all__ = ["build_arg_parser", "build_context", "exit_code_for", "main"]
