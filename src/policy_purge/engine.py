"""!
@brief Policy removal orchestrator.
@details Runs the steps of one purge in a fixed order:

1. MDM unenrollment (only when requested)
2. GPO filesystem scope
3. MDM filesystem scope
4. GPO machine registry scope
5. MDM registry scope, including per-enrollment subkeys
6. GPO history/RSoP scope
7. per-user registry scope, once per mounted user hive
8. policy refresh (unless skipped) and summary

Everything is sequential. The only fatal condition is failing to create the
run's backup root; any other failure is contained in the step or scope where
it happened.
"""
from __future__ import annotations

from typing import List

from . import catalog, reconcile, unenroll, user_hives
from .context import RunContext
from .dry_run import DryRunGate
from .models import PolicyTarget, Scope
from .removal import run_scope


class BackupRootError(RuntimeError):
    """!
    @brief Raised when the run's backup root cannot be created.
    """


def prepare_backup_root(ctx: RunContext, gate: DryRunGate) -> None:
    """!
    @throws BackupRootError If the directory cannot be created.
    """

    try:
        gate.make_directory(ctx.backup_root)
    except OSError as exc:
        ctx.error("Cannot create backup directory %s: %s", ctx.backup_root, exc, event="backup_root_failed")
        raise BackupRootError(f"Cannot create backup directory {ctx.backup_root}: {exc}") from exc
    ctx.info("Backups will be written to %s", ctx.backup_root, event="backup_root_ready")


def mdm_registry_targets(ctx: RunContext) -> List[PolicyTarget]:
    """!
    @brief Static MDM keys plus per-enrollment subkeys.
    @details When unenrollment was requested the per-enrollment subkeys are
    left to the platform unenrollment. If a platform leave failed during this
    run that choice may leave stale subkeys behind, which is reported rather
    than compensated for.
    """

    targets = catalog.mdm_registry_targets()
    enrollments = unenroll.discover_enrollments()
    if not ctx.unenroll_requested:
        targets.extend(catalog.enrollment_targets(enrollments))
        return targets

    if enrollments:
        ctx.info(
            "Unenrollment was requested; leaving subkeys of %d enrollment(s) to the platform",
            len(enrollments),
            event="enrollment_subkeys_skipped",
        )
    if ctx.leave_failures:
        ctx.warn(
            "dsregcmd /leave failed for %s; their enrollment subkeys may remain in the registry",
            ", ".join(ctx.leave_failures),
            event="enrollment_subkeys_possibly_stale",
            enrollments=list(ctx.leave_failures),
        )
    return targets


def _run_unenrollment(ctx: RunContext, gate: DryRunGate) -> None:
    try:
        unenroll.run_unenrollment(ctx, gate)
    except Exception as exc:  # noqa: BLE001 - unenrollment must not stop the purge
        ctx.error("MDM unenrollment failed unexpectedly: %s", exc, event="unenroll_exception")


def _run_user_scopes(ctx: RunContext, gate: DryRunGate) -> None:
    try:
        for user in user_hives.iter_loaded_users(ctx):
            run_scope(
                Scope.USER_REGISTRY,
                catalog.user_registry_targets(user),
                ctx,
                gate,
                label=f"{Scope.USER_REGISTRY.value} ({user.security_identifier})",
            )
    except Exception as exc:  # noqa: BLE001 - enumeration problems end only this step
        ctx.error("User profile enumeration failed: %s", exc, event="user_enumeration_exception")


def run(ctx: RunContext, gate: DryRunGate | None = None) -> reconcile.RunSummary:
    """!
    @brief Execute a complete purge for ``ctx``.
    @throws BackupRootError When the backup root cannot be created.
    @returns The structured run summary.
    """

    gate = gate or DryRunGate(ctx)
    ctx.info(
        "Starting policy removal (dry run: %s, unenroll: %s, skip refresh: %s)",
        ctx.dry_run,
        ctx.unenroll_requested,
        ctx.skip_reconciliation,
        event="engine_start",
    )
    prepare_backup_root(ctx, gate)

    if ctx.unenroll_requested:
        _run_unenrollment(ctx, gate)

    run_scope(Scope.GPO_FILESYSTEM, catalog.gpo_filesystem_targets(), ctx, gate)
    run_scope(Scope.MDM_FILESYSTEM, catalog.mdm_filesystem_targets(), ctx, gate)
    run_scope(Scope.GPO_MACHINE_REGISTRY, catalog.gpo_machine_registry_targets(), ctx, gate)
    run_scope(Scope.MDM_REGISTRY, mdm_registry_targets(ctx), ctx, gate)
    run_scope(Scope.GPO_HISTORY, catalog.gpo_history_targets(), ctx, gate)
    _run_user_scopes(ctx, gate)

    return reconcile.reconcile(ctx, gate)


__all__ = ["BackupRootError", "mdm_registry_targets", "prepare_backup_root", "run"]
