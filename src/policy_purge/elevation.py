"""!
@brief Privilege and platform checks.
@details A live purge edits ``HKLM`` and ``%SystemRoot%`` and must run
elevated (RMM agents normally run as ``SYSTEM``). Preview runs only read, so
they are allowed without administrative rights.
"""
from __future__ import annotations

import ctypes
import os


def is_admin() -> bool:
    """!
    @brief Determine whether the current process token has administrative rights.
    """

    if os.name != "nt":
        return False
    try:
        shell32 = ctypes.windll.shell32  # type: ignore[attr-defined]
        return bool(shell32.IsUserAnAdmin())
    except Exception:
        return False


def enforce_admin_guard(*, is_admin: bool, dry_run: bool) -> None:
    """!
    @throws PermissionError If a live run lacks administrative rights.
    """

    if dry_run:
        return
    if not is_admin:
        raise PermissionError("Administrative rights are required to remove policies.")


def enforce_platform_guard(*, os_name: str | None = None, dry_run: bool) -> None:
    """!
    @throws RuntimeError If a live run is attempted on a non-Windows host.
    """

    name = os.name if os_name is None else os_name
    if dry_run or name == "nt":
        return
    raise RuntimeError(f"Unsupported platform '{name}'; Windows is required.")


__all__ = ["enforce_admin_guard", "enforce_platform_guard", "is_admin"]
