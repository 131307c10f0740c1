"""!
@brief Removal executor and scope runner.
@details :func:`remove_target` applies backup-then-delete to one target and
answers whether the owning scope may continue. Only a failed backup of a
target flagged ``abort_on_backup_failure`` stops a scope; a failed deletion is
recorded and processing moves on, even for critical targets. Aborts are local
to the scope being processed: :func:`run_scope` stops its own loop and the
engine still runs every later scope.
"""
from __future__ import annotations

from typing import Iterable

from . import backup, fs_tools, registry_tools
from .context import RunContext
from .dry_run import DryRunGate
from .models import PolicyTarget, Scope


def target_exists(target: PolicyTarget) -> bool:
    """!
    @brief Live existence test for ``target``; never gated.
    """

    if target.is_registry:
        return registry_tools.key_exists(target.locator)
    return fs_tools.path_exists(target.locator)


def remove_target(target: PolicyTarget, ctx: RunContext, gate: DryRunGate) -> bool:
    """!
    @brief Back up and remove ``target``.
    @returns ``False`` only when a critical target could not be backed up and
    the caller must abort the rest of the scope.
    """

    fields = {"target": target.display_name, "locator": target.locator, "scope": target.scope.value}

    if not target_exists(target):
        ctx.info(
            "%s (%s) does not exist, skipping",
            target.display_name,
            target.locator,
            event="target_absent",
            **fields,
        )
        return True

    record = backup.backup_target(target, ctx.backup_root, gate)
    if not record.succeeded:
        if target.abort_on_backup_failure:
            ctx.error(
                "Backup of %s failed (%s); it will not be removed without a restorable copy",
                target.display_name,
                record.error_detail,
                event="backup_failed_abort",
                **fields,
            )
            return False
        ctx.warn(
            "Backup of %s failed (%s); continuing with removal",
            target.display_name,
            record.error_detail,
            event="backup_failed_continue",
            **fields,
        )

    if _delete(target, ctx, gate):
        ctx.success("Removed %s", target.display_name, dry_run=ctx.dry_run, event="target_removed", **fields)
    else:
        ctx.record_failure(target.display_name)

    if target.recreate and not target.is_registry:
        _recreate_directory(target, ctx, gate)

    return True


def _delete(target: PolicyTarget, ctx: RunContext, gate: DryRunGate) -> bool:
    if target.is_registry:
        result = gate.run(
            registry_tools.delete_command(target.locator),
            event="registry_delete",
            extra={"target": target.display_name, "key": target.locator},
        )
        if not result.succeeded:
            detail = result.error or (result.stderr or "").strip() or "no output"
            ctx.error(
                "Failed to remove %s: reg delete exited with %s (%s)",
                target.display_name,
                result.returncode,
                detail,
                event="target_remove_failed",
                target=target.display_name,
            )
            return False
        return True

    try:
        gate.delete_tree(fs_tools.resolve_path(target.locator))
    except OSError as exc:
        ctx.error(
            "Failed to remove %s: %s",
            target.display_name,
            exc,
            event="target_remove_failed",
            target=target.display_name,
        )
        return False
    return True


def _recreate_directory(target: PolicyTarget, ctx: RunContext, gate: DryRunGate) -> None:
    path = fs_tools.resolve_path(target.locator)
    try:
        gate.make_directory(path)
    except OSError as exc:
        ctx.warn("Could not recreate %s: %s", path, exc, event="recreate_failed", target=target.display_name)


def run_scope(
    scope: Scope,
    targets: Iterable[PolicyTarget],
    ctx: RunContext,
    gate: DryRunGate,
    *,
    label: str | None = None,
) -> bool:
    """!
    @brief Process ``targets`` in order as one scope.
    @details Unexpected exceptions are logged and end the scope rather than the
    run.
    @returns ``True`` when every target was processed.
    """

    pending = list(targets)
    title = label or scope.value
    ctx.info("--- %s: %d target(s) ---", title, len(pending), event="scope_start", scope=scope.value)

    for index, target in enumerate(pending):
        try:
            proceed = remove_target(target, ctx, gate)
        except Exception as exc:  # noqa: BLE001 - nothing may escape a scope
            ctx.error(
                "Unexpected error while processing %s: %s",
                target.display_name,
                exc,
                event="target_exception",
                target=target.display_name,
            )
            ctx.record_failure(target.display_name)
            proceed = False

        if not proceed:
            skipped = [item.display_name for item in pending[index + 1 :]]
            ctx.error(
                "Aborting %s scope; %d remaining target(s) skipped%s",
                title,
                len(skipped),
                f": {', '.join(skipped)}" if skipped else "",
                event="scope_aborted",
                scope=scope.value,
                skipped=skipped,
            )
            ctx.aborted_scopes.append(scope)
            return False

    ctx.info("%s scope complete", title, event="scope_complete", scope=scope.value)
    return True


__all__ = ["remove_target", "run_scope", "target_exists"]
