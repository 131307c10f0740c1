"""!
@brief Data records exchanged between the removal components.
@details Targets, backup records, user contexts and enrollment records are
plain dataclasses. Targets and backup records are frozen: once the catalog
or the backup service has produced one it is never modified.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass


class TargetKind(enum.Enum):
    """!
    @brief Kind of OS resource a :class:`PolicyTarget` addresses.
    """

    FILESYSTEM_TREE = "filesystem-tree"
    REGISTRY_KEY = "registry-key"


class Scope(enum.Enum):
    """!
    @brief Logical groups of targets, listed in processing order.
    """

    GPO_FILESYSTEM = "GPO filesystem"
    MDM_FILESYSTEM = "MDM filesystem"
    GPO_MACHINE_REGISTRY = "GPO machine registry"
    MDM_REGISTRY = "MDM registry"
    GPO_HISTORY = "GPO history/RSoP"
    USER_REGISTRY = "User registry"


@dataclass(frozen=True)
class PolicyTarget:
    """!
    @brief One backup-then-remove unit.
    @details ``locator`` is a filesystem path (``%VAR%`` references allowed) or
    a registry path such as ``HKLM\\SOFTWARE\\Policies`` or
    ``HKU\\<SID>\\Software\\Policies``. ``recreate`` applies to filesystem
    targets only and marks directories the OS expects to exist at all times.
    """

    kind: TargetKind
    locator: str
    display_name: str
    scope: Scope
    abort_on_backup_failure: bool = False
    recreate: bool = False

    @property
    def is_registry(self) -> bool:
        return self.kind is TargetKind.REGISTRY_KEY


@dataclass(frozen=True)
class BackupRecord:
    """!
    @brief Result of backing up one target.
    """

    source_locator: str
    backup_locator: str
    succeeded: bool
    error_detail: str | None = None


@dataclass(frozen=True)
class UserContext:
    """!
    @brief A non-special user profile discovered in the profile catalog.
    """

    security_identifier: str
    profile_path: str
    hive_loaded: bool


@dataclass(frozen=True)
class EnrollmentRecord:
    """!
    @brief An MDM enrollment found under the enrollment store.
    """

    enrollment_id: str
    provider_id: str
    upn: str | None = None


__all__ = [
    "BackupRecord",
    "EnrollmentRecord",
    "PolicyTarget",
    "Scope",
    "TargetKind",
    "UserContext",
]
