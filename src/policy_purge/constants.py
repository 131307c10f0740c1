"""!
@brief Static data for Policy Purge.
@details Registry roots, the locations of cached Group Policy and MDM
enforcement state, enrollment discovery patterns and run defaults live here
so the catalog, the enumerators and the CLI work from one source of truth.
"""
from __future__ import annotations

import re
from typing import Dict, Tuple

try:  # pragma: no cover - Windows registry handles are optional on test hosts.
    import winreg
except ImportError:  # pragma: no cover - test scaffolding supplies substitutes.
    winreg = None  # type: ignore[assignment]


if winreg is not None:  # pragma: no branch - deterministic assignments.
    HKLM = winreg.HKEY_LOCAL_MACHINE
    HKCU = winreg.HKEY_CURRENT_USER
    HKCR = winreg.HKEY_CLASSES_ROOT
    HKU = winreg.HKEY_USERS
else:  # pragma: no cover - exercised implicitly in non-Windows CI.
    HKLM = 0x80000002
    HKCU = 0x80000001
    HKCR = 0x80000000
    HKU = 0x80000003


REGISTRY_ROOTS: Dict[str, int] = {
    "HKLM": HKLM,
    "HKEY_LOCAL_MACHINE": HKLM,
    "HKCU": HKCU,
    "HKEY_CURRENT_USER": HKCU,
    "HKCR": HKCR,
    "HKEY_CLASSES_ROOT": HKCR,
    "HKU": HKU,
    "HKEY_USERS": HKU,
}

# ---------------------------------------------------------------------------
# Group Policy
# ---------------------------------------------------------------------------

GPO_FILESYSTEM_PATHS: Tuple[Tuple[str, str, bool], ...] = (
    # (locator, display name, recreate empty after removal)
    (r"%SystemRoot%\System32\GroupPolicy", "GroupPolicy folder", True),
    (r"%SystemRoot%\System32\GroupPolicyUsers", "GroupPolicyUsers folder", True),
    (r"%SystemRoot%\SysWOW64\GroupPolicy", "GroupPolicy folder (WOW64)", False),
)

GPO_MACHINE_REGISTRY_KEYS: Tuple[Tuple[str, str], ...] = (
    (r"HKLM\SOFTWARE\Policies", "HKLM Software Policies"),
    (r"HKLM\SOFTWARE\WOW6432Node\Policies", "HKLM Software Policies (WOW64)"),
    (r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Policies", "HKLM Windows Policies"),
)

GPO_HISTORY_REGISTRY_KEYS: Tuple[Tuple[str, str], ...] = (
    (r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Group Policy\History", "GPO History"),
    (r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Group Policy\State", "GPO State (RSoP)"),
    (
        r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Group Policy\DataStore",
        "GPO DataStore",
    ),
    (
        r"HKLM\SOFTWARE\Microsoft\Windows\CurrentVersion\Group Policy Objects",
        "HKLM Group Policy Objects",
    ),
)

USER_REGISTRY_SUBKEYS: Tuple[Tuple[str, str], ...] = (
    (r"Software\Policies", "Software Policies"),
    (r"Software\Microsoft\Windows\CurrentVersion\Policies", "Windows Policies"),
    (r"Software\Microsoft\Windows\CurrentVersion\Group Policy Objects", "Group Policy Objects"),
)

# ---------------------------------------------------------------------------
# MDM / Intune
# ---------------------------------------------------------------------------

MDM_FILESYSTEM_PATHS: Tuple[Tuple[str, str, bool], ...] = (
    (r"%ProgramData%\Microsoft\DMClient", "DMClient ProgramData folder", False),
    (
        r"%SystemRoot%\System32\config\systemprofile\AppData\Local\mdm",
        "MDM systemprofile cache",
        False,
    ),
)

MDM_REGISTRY_KEYS: Tuple[Tuple[str, str], ...] = (
    (r"HKLM\SOFTWARE\Microsoft\PolicyManager\current\device", "PolicyManager current device"),
    (r"HKLM\SOFTWARE\Microsoft\PolicyManager\Providers", "PolicyManager Providers"),
    (r"HKLM\SOFTWARE\Microsoft\PolicyManager\AdmxInstalled", "PolicyManager AdmxInstalled"),
    (r"HKLM\SOFTWARE\Microsoft\PolicyManager\AdmxDefault", "PolicyManager AdmxDefault"),
    (r"HKLM\SOFTWARE\Microsoft\Provisioning\OMADM\Accounts", "OMADM Accounts"),
    (r"HKLM\SOFTWARE\Microsoft\EnterpriseResourceManager\Tracked", "EnterpriseResourceManager Tracked"),
)

ENROLLMENTS_KEY = r"HKLM\SOFTWARE\Microsoft\Enrollments"

ENROLLMENT_SUBKEYS: Tuple[str, ...] = ("DMClient", "PolicyManager", "FirstSync")

ENROLLMENT_ID_PATTERN = re.compile(
    r"^\{?[0-9A-Fa-f]{8}-(?:[0-9A-Fa-f]{4}-){3}[0-9A-Fa-f]{12}\}?$"
)

MDM_PROVIDER_ID = "MS DM Server"

AZURE_AD_JOINED_PATTERN = re.compile(r"AzureAdJoined\s*:\s*YES", re.IGNORECASE)

# ---------------------------------------------------------------------------
# User profiles
# ---------------------------------------------------------------------------

PROFILE_LIST_KEY = r"HKLM\SOFTWARE\Microsoft\Windows NT\CurrentVersion\ProfileList"

USER_SID_PREFIXES: Tuple[str, ...] = (
    "S-1-5-21-",  # local and domain accounts
    "S-1-12-1-",  # Azure AD accounts
)

# ---------------------------------------------------------------------------
# Run defaults
# ---------------------------------------------------------------------------

BACKUP_ROOT_PREFIX = "GPO_MDM_Backup"

DEFAULT_BACKUP_BASE = r"%SystemDrive%\PolicyBackups"

DEFAULT_LOG_DIRECTORY = r"%ProgramData%\PolicyPurge\logs"

DEFAULT_SETTLE_SECONDS = 30

REG_EXECUTABLE = "reg.exe"

DSREGCMD_EXECUTABLE = "dsregcmd.exe"

GPUPDATE_EXECUTABLE = "gpupdate.exe"


__all__ = [
    "AZURE_AD_JOINED_PATTERN",
    "BACKUP_ROOT_PREFIX",
    "DEFAULT_BACKUP_BASE",
    "DEFAULT_LOG_DIRECTORY",
    "DEFAULT_SETTLE_SECONDS",
    "DSREGCMD_EXECUTABLE",
    "ENROLLMENTS_KEY",
    "ENROLLMENT_ID_PATTERN",
    "ENROLLMENT_SUBKEYS",
    "GPO_FILESYSTEM_PATHS",
    "GPO_HISTORY_REGISTRY_KEYS",
    "GPO_MACHINE_REGISTRY_KEYS",
    "GPUPDATE_EXECUTABLE",
    "HKCR",
    "HKCU",
    "HKLM",
    "HKU",
    "MDM_FILESYSTEM_PATHS",
    "MDM_PROVIDER_ID",
    "MDM_REGISTRY_KEYS",
    "PROFILE_LIST_KEY",
    "REGISTRY_ROOTS",
    "REG_EXECUTABLE",
    "USER_REGISTRY_SUBKEYS",
    "USER_SID_PREFIXES",
]
