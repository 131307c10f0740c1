"""!
@brief Tests for :mod:`policy_purge.unenroll`.
"""

from __future__ import annotations

from policy_purge import constants, unenroll
from policy_purge.context import LogLevel
from policy_purge.dry_run import DryRunGate

ENROLLMENT_ID = "A1B2C3D4-E5F6-4789-ABCD-0123456789AB"
OTHER_ID = "0F0E0D0C-0B0A-4999-8888-777766665555"


def _add_enrollment(fake_system, enrollment_id: str, provider: str = constants.MDM_PROVIDER_ID) -> None:
    fake_system.add_key(
        f"{constants.ENROLLMENTS_KEY}\\{enrollment_id}",
        ProviderID=provider,
        UPN="user@contoso.com",
    )


def test_discover_ignores_non_guid_children(fake_system) -> None:
    _add_enrollment(fake_system, ENROLLMENT_ID)
    fake_system.add_key(f"{constants.ENROLLMENTS_KEY}\\Context")
    fake_system.add_key(f"{constants.ENROLLMENTS_KEY}\\Status")

    records = unenroll.discover_enrollments()

    assert [record.enrollment_id for record in records] == [ENROLLMENT_ID]
    assert records[0].provider_id == "MS DM Server"
    assert records[0].upn == "user@contoso.com"


def test_joined_device_leaves_and_settles(make_context, fake_system) -> None:
    """!
    @brief One managed enrollment on a joined device: one leave, one settle wait.
    """

    _add_enrollment(fake_system, ENROLLMENT_ID)
    fake_system.dsregcmd_status = "+----+\n             AzureAdJoined : YES\n"
    sleeps: list[float] = []
    ctx = make_context(unenroll_requested=True, settle_seconds=30)

    records = unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=sleeps.append))

    assert len(records) == 1
    assert len(fake_system.ran("dsregcmd.exe", "/leave")) == 1
    assert sleeps == [30.0]
    assert ctx.leave_failures == []


def test_status_queried_once_per_run(make_context, fake_system) -> None:
    _add_enrollment(fake_system, ENROLLMENT_ID)
    _add_enrollment(fake_system, OTHER_ID)
    fake_system.dsregcmd_status = "AzureAdJoined : YES\n"
    ctx = make_context()

    unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=lambda _seconds: None))

    assert len(fake_system.ran("dsregcmd.exe", "/status")) == 1
    assert len(fake_system.ran("dsregcmd.exe", "/leave")) == 2


def test_not_joined_skips_leave(make_context, fake_system) -> None:
    _add_enrollment(fake_system, ENROLLMENT_ID)
    ctx = make_context()

    unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=lambda _seconds: None))

    assert fake_system.ran("dsregcmd.exe", "/leave") == []
    assert any("will be removed directly" in entry.message for entry in ctx.log)


def test_foreign_provider_is_left_alone(make_context, fake_system) -> None:
    _add_enrollment(fake_system, ENROLLMENT_ID, provider="WMI_Bridge_SCCM_Server")
    fake_system.dsregcmd_status = "AzureAdJoined : YES\n"
    ctx = make_context()

    unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=lambda _seconds: None))

    assert fake_system.commands == []


def test_leave_failure_warns_and_continues(make_context, fake_system) -> None:
    _add_enrollment(fake_system, ENROLLMENT_ID)
    fake_system.dsregcmd_status = "AzureAdJoined : YES\n"
    fake_system.leave_returncode = 1
    sleeps: list[float] = []
    ctx = make_context(settle_seconds=5)

    unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=sleeps.append))

    warnings = ctx.entries(LogLevel.WARN)
    assert len(warnings) == 1 and "exited with 1" in warnings[0].message
    assert ctx.leave_failures == [ENROLLMENT_ID]
    assert sleeps == [5.0]


def test_dry_run_reads_status_but_does_not_leave(make_context, fake_system) -> None:
    _add_enrollment(fake_system, ENROLLMENT_ID)
    fake_system.dsregcmd_status = "AzureAdJoined : YES\n"
    sleeps: list[float] = []
    ctx = make_context(dry_run=True, settle_seconds=30)

    unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=sleeps.append))

    assert len(fake_system.ran("dsregcmd.exe", "/status")) == 1
    assert fake_system.ran("dsregcmd.exe", "/leave") == []
    assert sleeps == []
    assert any(entry.message.startswith("Running: dsregcmd.exe /leave") for entry in ctx.log)


def test_no_enrollments_still_settles(make_context, fake_system) -> None:
    sleeps: list[float] = []
    ctx = make_context(settle_seconds=2)

    assert unenroll.run_unenrollment(ctx, DryRunGate(ctx, sleeper=sleeps.append)) == []

    assert sleeps == [2.0]
    assert fake_system.commands == []
