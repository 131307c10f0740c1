"""!
@brief Resource catalog.
@details Turns the locations in :mod:`policy_purge.constants` into
:class:`~policy_purge.models.PolicyTarget` lists, one function per scope.
Machine GPO registry targets are the only critical ones: a failed backup of
any of them aborts that scope. Everything else may legitimately be missing or
unexportable on unmanaged machines.
"""
from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from . import constants, registry_tools
from .models import EnrollmentRecord, PolicyTarget, Scope, TargetKind, UserContext


def _filesystem_targets(entries: Sequence[Tuple[str, str, bool]], scope: Scope) -> List[PolicyTarget]:
    return [
        PolicyTarget(
            kind=TargetKind.FILESYSTEM_TREE,
            locator=locator,
            display_name=name,
            scope=scope,
            recreate=recreate,
        )
        for locator, name, recreate in entries
    ]


def _registry_targets(
    entries: Sequence[Tuple[str, str]], scope: Scope, *, critical: bool = False
) -> List[PolicyTarget]:
    return [
        PolicyTarget(
            kind=TargetKind.REGISTRY_KEY,
            locator=locator,
            display_name=name,
            scope=scope,
            abort_on_backup_failure=critical,
        )
        for locator, name in entries
    ]


def gpo_filesystem_targets() -> List[PolicyTarget]:
    return _filesystem_targets(constants.GPO_FILESYSTEM_PATHS, Scope.GPO_FILESYSTEM)


def mdm_filesystem_targets() -> List[PolicyTarget]:
    return _filesystem_targets(constants.MDM_FILESYSTEM_PATHS, Scope.MDM_FILESYSTEM)


def gpo_machine_registry_targets() -> List[PolicyTarget]:
    return _registry_targets(constants.GPO_MACHINE_REGISTRY_KEYS, Scope.GPO_MACHINE_REGISTRY, critical=True)


def gpo_history_targets() -> List[PolicyTarget]:
    return _registry_targets(constants.GPO_HISTORY_REGISTRY_KEYS, Scope.GPO_HISTORY)


def mdm_registry_targets() -> List[PolicyTarget]:
    """!
    @brief Static MDM policy keys; per-enrollment keys come from
    :func:`enrollment_targets`.
    """

    return _registry_targets(constants.MDM_REGISTRY_KEYS, Scope.MDM_REGISTRY)


def enrollment_targets(enrollments: Iterable[EnrollmentRecord]) -> List[PolicyTarget]:
    """!
    @brief ``DMClient``, ``PolicyManager`` and ``FirstSync`` subkeys of each
    enrollment.
    """

    targets: List[PolicyTarget] = []
    for enrollment in enrollments:
        for subkey in constants.ENROLLMENT_SUBKEYS:
            targets.append(
                PolicyTarget(
                    kind=TargetKind.REGISTRY_KEY,
                    locator=registry_tools.join_locator(
                        constants.ENROLLMENTS_KEY, enrollment.enrollment_id, subkey
                    ),
                    display_name=f"Enrollment {enrollment.enrollment_id} {subkey}",
                    scope=Scope.MDM_REGISTRY,
                )
            )
    return targets


def user_registry_targets(user: UserContext) -> List[PolicyTarget]:
    """!
    @brief Policy keys inside one mounted user hive under ``HKU\\<SID>``.
    """

    sid = user.security_identifier
    return [
        PolicyTarget(
            kind=TargetKind.REGISTRY_KEY,
            locator=registry_tools.join_locator("HKU", sid, subkey),
            display_name=f"{sid} {name}",
            scope=Scope.USER_REGISTRY,
        )
        for subkey, name in constants.USER_REGISTRY_SUBKEYS
    ]


__all__ = [
    "enrollment_targets",
    "gpo_filesystem_targets",
    "gpo_history_targets",
    "gpo_machine_registry_targets",
    "mdm_filesystem_targets",
    "mdm_registry_targets",
    "user_registry_targets",
]
