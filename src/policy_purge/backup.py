"""!
@brief Backup service.
@details Produces a restorable copy of a target under the run's backup root
before anything destructive happens. Filesystem trees are copied to
``<root>/<name>.bak`` via a ``.partial`` staging directory that is renamed
into place only after the copy completes, so an interrupted copy never
looks like a valid backup. Registry keys are exported with ``reg export`` to
``<root>/<name>.reg``; the export tool's exit status alone decides success.
The service only ever adds files under the backup root.
"""
from __future__ import annotations

from pathlib import Path

from . import fs_tools, registry_tools
from .dry_run import DryRunGate
from .models import BackupRecord, PolicyTarget

_ILLEGAL_NAME_CHARACTERS = ("\\", ":")


def sanitize_display_name(display_name: str) -> str:
    """!
    @brief Replace path-illegal characters in ``display_name`` with ``_``.
    @details Collisions are tolerated; a later backup with the same name
    replaces the earlier one.
    """

    safe = display_name
    for character in _ILLEGAL_NAME_CHARACTERS:
        safe = safe.replace(character, "_")
    return safe


def backup_target(target: PolicyTarget, backup_root: Path, gate: DryRunGate) -> BackupRecord:
    """!
    @brief Back up ``target`` beneath ``backup_root``.
    @details The resulting record is appended to the run context.
    @returns The immutable :class:`BackupRecord` for this target.
    """

    if target.is_registry:
        record = _backup_registry_key(target, backup_root, gate)
    else:
        record = _backup_filesystem_tree(target, backup_root, gate)

    gate.ctx.record_backup(record)
    if record.succeeded:
        gate.ctx.success(
            "Backed up %s to %s",
            target.display_name,
            record.backup_locator,
            dry_run=gate.ctx.dry_run,
            event="backup_result",
            target=target.display_name,
            backup=record.backup_locator,
        )
    return record


def _backup_registry_key(target: PolicyTarget, backup_root: Path, gate: DryRunGate) -> BackupRecord:
    destination = backup_root / f"{sanitize_display_name(target.display_name)}.reg"
    result = gate.run(
        registry_tools.export_command(target.locator, destination),
        event="registry_export",
        extra={"target": target.display_name, "key": target.locator, "path": str(destination)},
    )
    if not result.succeeded:
        detail = result.error or (result.stderr or "").strip() or "no output"
        return BackupRecord(
            source_locator=target.locator,
            backup_locator=str(destination),
            succeeded=False,
            error_detail=f"reg export exited with {result.returncode}: {detail}",
        )
    return BackupRecord(
        source_locator=target.locator,
        backup_locator=str(destination),
        succeeded=True,
    )


def _backup_filesystem_tree(target: PolicyTarget, backup_root: Path, gate: DryRunGate) -> BackupRecord:
    source = fs_tools.resolve_path(target.locator)
    safe_name = sanitize_display_name(target.display_name)
    destination = backup_root / f"{safe_name}.bak"
    staging = backup_root / f"{safe_name}.bak.partial"

    try:
        if staging.exists():
            gate.delete_tree(staging)
        gate.copy_tree(source, staging)
        gate.rename(staging, destination)
    except OSError as exc:
        _discard_staging(staging, gate)
        return BackupRecord(
            source_locator=target.locator,
            backup_locator=str(destination),
            succeeded=False,
            error_detail=str(exc),
        )

    return BackupRecord(
        source_locator=target.locator,
        backup_locator=str(destination),
        succeeded=True,
    )


def _discard_staging(staging: Path, gate: DryRunGate) -> None:
    if not staging.exists():
        return
    try:
        gate.delete_tree(staging)
    except OSError as exc:
        gate.ctx.warn("Could not remove partial backup %s: %s", staging, exc)


__all__ = ["backup_target", "sanitize_display_name"]
