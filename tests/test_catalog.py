"""!
@brief Tests for :mod:`policy_purge.catalog`.
"""

from __future__ import annotations

from policy_purge import catalog, constants
from policy_purge.models import EnrollmentRecord, Scope, TargetKind, UserContext


def test_only_machine_registry_targets_are_critical() -> None:
    critical = catalog.gpo_machine_registry_targets()
    others = (
        catalog.gpo_filesystem_targets()
        + catalog.mdm_filesystem_targets()
        + catalog.mdm_registry_targets()
        + catalog.gpo_history_targets()
    )

    assert critical and all(target.abort_on_backup_failure for target in critical)
    assert not any(target.abort_on_backup_failure for target in others)
    assert {target.scope for target in critical} == {Scope.GPO_MACHINE_REGISTRY}


def test_group_policy_folders_are_recreated() -> None:
    recreated = [target.display_name for target in catalog.gpo_filesystem_targets() if target.recreate]

    assert recreated == ["GroupPolicy folder", "GroupPolicyUsers folder"]
    assert all(target.kind is TargetKind.FILESYSTEM_TREE for target in catalog.mdm_filesystem_targets())


def test_enrollment_targets_cover_each_subkey() -> None:
    enrollments = [EnrollmentRecord("A1B2C3D4-E5F6-4789-ABCD-0123456789AB", "MS DM Server")]

    targets = catalog.enrollment_targets(enrollments)

    assert [target.locator for target in targets] == [
        f"{constants.ENROLLMENTS_KEY}\\A1B2C3D4-E5F6-4789-ABCD-0123456789AB\\{subkey}"
        for subkey in constants.ENROLLMENT_SUBKEYS
    ]
    assert all(target.scope is Scope.MDM_REGISTRY for target in targets)


def test_user_registry_targets_live_under_hku() -> None:
    user = UserContext("S-1-5-21-1-2-3-1001", r"C:\Users\alice", True)

    targets = catalog.user_registry_targets(user)

    assert targets[0].locator == r"HKU\S-1-5-21-1-2-3-1001\Software\Policies"
    assert targets[0].display_name == "S-1-5-21-1-2-3-1001 Software Policies"
    assert len(targets) == len(constants.USER_REGISTRY_SUBKEYS)
