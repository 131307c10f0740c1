"""!
@brief Post-run policy reconciliation and run summary.
@details After the removal scopes finish, ``gpupdate /force`` asks the machine
to pull enforced policy again; a failure there is only a warning because
domain- or MDM-managed devices are expected to keep some policy. The summary
is always produced, both as log lines for the operator and as a
:class:`RunSummary` returned to callers and emitted on the machine channel.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List

from . import constants, logging_ext
from .context import RunContext
from .dry_run import DryRunGate

CAVEATS: tuple[str, ...] = (
    "Removing policy enforcement does not restore default values for settings that were changed.",
    "Policies of users who were not logged in were not touched.",
    "Domain-joined or MDM-managed devices may have all policies reapplied on the next management cycle.",
)


@dataclass
class RunSummary:
    """!
    @brief Structured end-of-run summary.
    """

    backup_root: str
    dry_run: bool
    failed_targets: List[str] = field(default_factory=list)
    aborted_scopes: List[str] = field(default_factory=list)
    backups_succeeded: int = 0
    backups_failed: int = 0
    reconciliation: str = "skipped"
    caveats: List[str] = field(default_factory=lambda: list(CAVEATS))

    @property
    def clean(self) -> bool:
        return not self.failed_targets and not self.aborted_scopes


def refresh_policy(ctx: RunContext, gate: DryRunGate) -> str:
    """!
    @brief Trigger ``gpupdate /force`` unless reconciliation is skipped.
    @returns ``"skipped"``, ``"succeeded"`` or ``"failed"``.
    """

    if ctx.skip_reconciliation:
        ctx.info("Skipping Group Policy refresh as requested", event="gpupdate_skipped")
        return "skipped"

    ctx.info("--- Policy refresh ---", event="gpupdate_start")
    result = gate.run([constants.GPUPDATE_EXECUTABLE, "/force"], event="gpupdate")
    if not result.succeeded:
        ctx.warn(
            "gpupdate /force exited with %s; domain policies may still be enforced, which is expected",
            result.returncode,
            event="gpupdate_failed",
        )
        return "failed"

    ctx.success("Group Policy refresh completed", dry_run=ctx.dry_run, event="gpupdate_completed")
    return "succeeded"


def build_summary(ctx: RunContext, reconciliation: str) -> RunSummary:
    return RunSummary(
        backup_root=str(ctx.backup_root),
        dry_run=ctx.dry_run,
        failed_targets=list(ctx.failed_targets),
        aborted_scopes=[scope.value for scope in ctx.aborted_scopes],
        backups_succeeded=sum(1 for record in ctx.backup_records if record.succeeded),
        backups_failed=sum(1 for record in ctx.backup_records if not record.succeeded),
        reconciliation=reconciliation,
    )


def emit_summary(ctx: RunContext, summary: RunSummary) -> None:
    """!
    @brief Write the summary block to the run log and the machine channel.
    """

    ctx.info("=== Summary ===", event="summary_start")
    ctx.info(
        "Mode: %s",
        "dry run, no changes were made" if summary.dry_run else "live",
        event="summary_mode",
    )
    ctx.info("Backup location: %s", summary.backup_root, event="summary_backup_root")
    ctx.info(
        "Backups: %d succeeded, %d failed",
        summary.backups_succeeded,
        summary.backups_failed,
        event="summary_backups",
    )
    if summary.failed_targets:
        ctx.error(
            "%d target(s) failed removal: %s",
            len(summary.failed_targets),
            ", ".join(summary.failed_targets),
            event="summary_failures",
        )
    else:
        ctx.success("All targets processed without removal failures", event="summary_failures")
    if summary.aborted_scopes:
        ctx.error("Aborted scopes: %s", ", ".join(summary.aborted_scopes), event="summary_aborted")
    for caveat in summary.caveats:
        ctx.info("Note: %s", caveat, event="summary_caveat")

    ctx.machine_logger.info(
        "run_summary",
        extra=logging_ext.build_event_extra("run_summary", summary=asdict(summary)),
    )


def reconcile(ctx: RunContext, gate: DryRunGate) -> RunSummary:
    """!
    @brief Refresh policy (unless skipped) and emit the summary.
    """

    outcome = refresh_policy(ctx, gate)
    summary = build_summary(ctx, outcome)
    emit_summary(ctx, summary)
    return summary


__all__ = ["CAVEATS", "RunSummary", "build_summary", "emit_summary", "reconcile", "refresh_policy"]
