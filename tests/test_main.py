"""!
@brief Tests for the command-line entry point.
"""

from __future__ import annotations

import logging

import pytest

from policy_purge import confirm, constants, elevation, engine, exec_utils, logging_ext, main
from policy_purge.reconcile import RunSummary


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    for name in (logging_ext.HUMAN_LOGGER_NAME, logging_ext.MACHINE_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        for flt in list(logger.filters):
            logger.removeFilter(flt)
        logger.propagate = True
    exec_utils.set_global_timeout(None)


@pytest.fixture
def empty_catalog(monkeypatch):
    monkeypatch.setattr(constants, "GPO_FILESYSTEM_PATHS", ())
    monkeypatch.setattr(constants, "MDM_FILESYSTEM_PATHS", ())


def _base_args(tmp_path) -> list[str]:
    return ["--logdir", str(tmp_path / "logs"), "--backup-dir", str(tmp_path / "backups")]


def test_parser_defaults() -> None:
    args = main.build_arg_parser().parse_args([])

    assert args.dry_run is False
    assert args.skip_reconciliation is False
    assert args.unenroll is False
    assert args.settle_seconds == constants.DEFAULT_SETTLE_SECONDS
    assert args.yes is False


def test_parser_flags() -> None:
    args = main.build_arg_parser().parse_args(
        ["--whatif", "--skip-gpupdate", "--unenroll-mdm", "--settle-seconds", "5", "--timeout", "60", "-y"]
    )

    assert args.dry_run is True
    assert args.skip_reconciliation is True
    assert args.unenroll is True
    assert args.settle_seconds == 5.0
    assert args.timeout == 60
    assert args.yes is True


def test_build_context_uses_timestamped_root(tmp_path) -> None:
    args = main.build_arg_parser().parse_args(
        ["--dry-run", "--backup-dir", str(tmp_path), "--settle-seconds", "-3"]
    )

    ctx = main.build_context(args)

    assert ctx.dry_run is True
    assert ctx.backup_root.parent == tmp_path
    assert ctx.backup_root.name.startswith(f"{constants.BACKUP_ROOT_PREFIX}_")
    assert ctx.settle_seconds == 0.0


@pytest.mark.parametrize(
    "failed, aborted, expected",
    [
        ([], [], main.EXIT_OK),
        (["HKLM Software Policies"], [], main.EXIT_FAILURES),
        ([], ["GPO machine registry"], main.EXIT_FAILURES),
    ],
)
def test_exit_code_for(failed, aborted, expected) -> None:
    summary = RunSummary(backup_root="x", dry_run=False, failed_targets=failed, aborted_scopes=aborted)

    assert main.exit_code_for(summary) == expected


def test_dry_run_end_to_end(tmp_path, fake_system, empty_catalog) -> None:
    """!
    @brief A preview run needs neither Windows nor elevation and writes logs.
    """

    fake_system.add_key(r"HKLM\SOFTWARE\Policies\Contoso")

    exit_code = main.main(["--dry-run", "--quiet", *_base_args(tmp_path)])

    assert exit_code == main.EXIT_OK
    assert fake_system.key_exists(r"HKLM\SOFTWARE\Policies\Contoso")
    assert not (tmp_path / "backups").exists()
    assert (tmp_path / "logs" / "policy-purge.log").is_file()
    assert "[dry-run]" in (tmp_path / "logs" / "policy-purge.log").read_text(encoding="utf-8")
    assert (tmp_path / "logs" / "policy-purge.jsonl").is_file()


def test_live_run_requires_windows(tmp_path, fake_system, monkeypatch) -> None:
    guard = elevation.enforce_platform_guard
    monkeypatch.setattr(
        elevation,
        "enforce_platform_guard",
        lambda *, dry_run: guard(os_name="posix", dry_run=dry_run),
    )

    assert main.main(["--yes", *_base_args(tmp_path)]) == main.EXIT_FATAL
    assert fake_system.commands == []


def test_live_run_requires_admin(tmp_path, fake_system, monkeypatch) -> None:
    monkeypatch.setattr(elevation, "enforce_platform_guard", lambda **_kwargs: None)
    monkeypatch.setattr(elevation, "is_admin", lambda: False)

    assert main.main(["--yes", *_base_args(tmp_path)]) == main.EXIT_FATAL


def test_failures_map_to_exit_one(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        engine,
        "run",
        lambda ctx: RunSummary(backup_root=str(ctx.backup_root), dry_run=True, failed_targets=["x"]),
    )

    assert main.main(["--dry-run", "--quiet", *_base_args(tmp_path)]) == main.EXIT_FAILURES


def test_backup_root_error_maps_to_exit_two(tmp_path, monkeypatch) -> None:
    def fail(ctx):
        raise engine.BackupRootError("disk missing")

    monkeypatch.setattr(engine, "run", fail)

    assert main.main(["--dry-run", "--quiet", *_base_args(tmp_path)]) == main.EXIT_FATAL


def test_declined_confirmation_exits_without_running(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(elevation, "enforce_platform_guard", lambda **_kwargs: None)
    monkeypatch.setattr(elevation, "is_admin", lambda: True)
    monkeypatch.setattr(confirm, "request_confirmation", lambda **_kwargs: False)

    def unexpected(ctx):  # pragma: no cover - assertion path
        raise AssertionError("engine must not run")

    monkeypatch.setattr(engine, "run", unexpected)

    assert main.main(_base_args(tmp_path)) == main.EXIT_OK
