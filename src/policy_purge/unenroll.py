"""!
@brief MDM enrollment discovery and unenrollment.
@details The unenrollment step is linear and never retries: enumerate
GUID-shaped entries under the enrollment store, and for each one managed by
the expected provider either ask the platform to leave Azure AD (when the
device is joined) or note that the MDM registry scope will remove the
enrollment keys directly. A fixed settle wait follows because the platform
leave completes asynchronously and exposes no completion signal; the
configured settle interval is the worst-case delay this step adds.
"""
from __future__ import annotations

from typing import List

from . import constants, exec_utils, registry_tools
from .context import RunContext
from .dry_run import DryRunGate
from .models import EnrollmentRecord


def discover_enrollments() -> List[EnrollmentRecord]:
    """!
    @brief Read enrollment records; non-GUID children are ignored.
    """

    records: List[EnrollmentRecord] = []
    for name in registry_tools.list_subkeys(constants.ENROLLMENTS_KEY):
        if not constants.ENROLLMENT_ID_PATTERN.match(name):
            continue
        key = registry_tools.join_locator(constants.ENROLLMENTS_KEY, name)
        values = registry_tools.read_values(key)
        upn = values.get("UPN")
        records.append(
            EnrollmentRecord(
                enrollment_id=name,
                provider_id=str(values.get("ProviderID") or ""),
                upn=str(upn) if upn else None,
            )
        )
    return records


def is_azure_ad_joined() -> bool:
    """!
    @brief Query ``dsregcmd /status`` and look for ``AzureAdJoined : YES``.
    @details Read-only, so it runs even in preview mode.
    """

    result = exec_utils.run_command(
        [constants.DSREGCMD_EXECUTABLE, "/status"],
        event="dsregcmd_status",
    )
    if not result.succeeded:
        return False
    return bool(constants.AZURE_AD_JOINED_PATTERN.search(result.stdout or ""))


def run_unenrollment(ctx: RunContext, gate: DryRunGate) -> List[EnrollmentRecord]:
    """!
    @brief Execute the unenrollment step.
    @details A non-zero exit from ``dsregcmd /leave`` is logged as WARN and
    recorded in ``ctx.leave_failures``; the step always moves on to the next
    enrollment and always ends with the settle wait.
    @returns The enrollments that were examined.
    """

    ctx.info("--- MDM unenrollment ---", event="unenroll_start")
    enrollments = discover_enrollments()
    if not enrollments:
        ctx.info("No MDM enrollments found under %s", constants.ENROLLMENTS_KEY, event="no_enrollments")

    joined: bool | None = None
    for enrollment in enrollments:
        ctx.info(
            "Enrollment %s: provider %s%s",
            enrollment.enrollment_id,
            enrollment.provider_id or "unknown",
            f", UPN {enrollment.upn}" if enrollment.upn else "",
            event="enrollment_found",
            enrollment=enrollment.enrollment_id,
        )
        if enrollment.provider_id != constants.MDM_PROVIDER_ID:
            ctx.info(
                "Enrollment %s is not managed by %s, leaving it to the registry scopes",
                enrollment.enrollment_id,
                constants.MDM_PROVIDER_ID,
                event="enrollment_other_provider",
            )
            continue

        if joined is None:
            joined = is_azure_ad_joined()
        if not joined:
            ctx.info(
                "Device is not Azure AD joined; enrollment %s keys will be removed directly",
                enrollment.enrollment_id,
                event="enrollment_direct_removal",
            )
            continue

        result = gate.run(
            [constants.DSREGCMD_EXECUTABLE, "/leave"],
            event="dsregcmd_leave",
            extra={"enrollment": enrollment.enrollment_id},
        )
        if not result.succeeded:
            ctx.warn(
                "dsregcmd /leave exited with %s for enrollment %s",
                result.returncode,
                enrollment.enrollment_id,
                event="leave_failed",
                enrollment=enrollment.enrollment_id,
            )
            ctx.leave_failures.append(enrollment.enrollment_id)
        else:
            ctx.success(
                "dsregcmd /leave exited with 0 for enrollment %s",
                enrollment.enrollment_id,
                dry_run=ctx.dry_run,
                event="leave_succeeded",
            )

    gate.wait(ctx.settle_seconds, reason="for unenrollment to settle")
    return enrollments


__all__ = ["discover_enrollments", "is_azure_ad_joined", "run_unenrollment"]
