"""!
@brief Policy Purge package root.
@details Backs up and removes locally cached Group Policy and MDM (Intune)
enforcement state from a Windows machine, with a preview mode that performs
no changes.
"""

__all__ = [
    "backup",
    "catalog",
    "confirm",
    "constants",
    "context",
    "dry_run",
    "elevation",
    "engine",
    "exec_utils",
    "fs_tools",
    "logging_ext",
    "main",
    "models",
    "reconcile",
    "registry_tools",
    "removal",
    "unenroll",
    "user_hives",
    "version",
]
