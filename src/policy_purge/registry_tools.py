"""!
@brief Registry helpers.
@details Read-only access goes through ``winreg`` (key existence, subkey and
value enumeration). Export and delete are performed by ``reg.exe`` so the
exit status of the platform tool is the only success signal; this module only
builds those command lines, and the dry-run gate decides whether they run.

Locators are strings such as ``HKLM\\SOFTWARE\\Policies`` or
``HKU\\S-1-5-21-...\\Software\\Policies``.
"""
from __future__ import annotations

import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

from . import constants

try:  # pragma: no cover - exercised through mocks on non-Windows platforms.
    import winreg
except ImportError:  # pragma: no cover - handled gracefully during tests.
    winreg = None  # type: ignore[assignment]


# reg.exe must act on the same 64-bit view that open_key reads, even when
# launched from a 32-bit interpreter.
REGISTRY_VIEW_SWITCH = "/reg:64"


class RegistryLocatorError(ValueError):
    """!
    @brief Raised when a locator does not start with a known hive.
    """


def _ensure_winreg() -> None:
    if winreg is None:  # pragma: no cover - simplifies non-Windows test runs.
        raise FileNotFoundError("Windows registry APIs are unavailable on this platform")


def split_locator(locator: str) -> Tuple[int, str]:
    """!
    @brief Split ``locator`` into a root handle and a subkey path.
    @throws RegistryLocatorError If the hive prefix is unknown.
    """

    text = str(locator).strip().strip("\\")
    hive, _, subpath = text.partition("\\")
    root = constants.REGISTRY_ROOTS.get(hive.upper())
    if root is None:
        raise RegistryLocatorError(f"Unknown registry hive in locator: {locator!r}")
    return root, subpath


def join_locator(*parts: str) -> str:
    """!
    @brief Join locator fragments with single backslashes.
    """

    return "\\".join(part.strip("\\") for part in parts if part and part.strip("\\"))


@contextmanager
def open_key(root: int, path: str, access: int | None = None) -> Iterator[Any]:
    """!
    @brief Context manager mirroring ``winreg.OpenKey`` that always closes the
    handle. Reads use the 64-bit registry view.
    """

    _ensure_winreg()
    if access is None:
        access = winreg.KEY_READ | winreg.KEY_WOW64_64KEY  # type: ignore[union-attr]
    handle = winreg.OpenKey(root, path, 0, access)  # type: ignore[union-attr]
    try:
        yield handle
    finally:
        winreg.CloseKey(handle)  # type: ignore[union-attr]


def key_exists(locator: str) -> bool:
    """!
    @brief Determine whether the key addressed by ``locator`` exists.
    """

    try:
        root, path = split_locator(locator)
        with open_key(root, path):
            return True
    except OSError:
        return False


def iter_subkeys(locator: str) -> Iterator[str]:
    """!
    @brief Yield subkey names beneath ``locator``.
    """

    root, path = split_locator(locator)
    with open_key(root, path) as handle:
        subkey_count, _, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
        for index in range(subkey_count):
            yield winreg.EnumKey(handle, index)  # type: ignore[union-attr]


def list_subkeys(locator: str) -> List[str]:
    """!
    @brief Return subkey names beneath ``locator``, or ``[]`` if it is absent.
    """

    try:
        return list(iter_subkeys(locator))
    except OSError:
        return []


def get_value(locator: str, value_name: str, default: Any | None = None) -> Any | None:
    """!
    @brief Read ``value_name`` beneath ``locator``.
    """

    try:
        root, path = split_locator(locator)
        with open_key(root, path) as handle:
            value, _ = winreg.QueryValueEx(handle, value_name)  # type: ignore[union-attr]
            return value
    except OSError:
        return default


def read_values(locator: str) -> Dict[str, Any]:
    """!
    @brief Read all values beneath ``locator`` into a dictionary.
    """

    data: Dict[str, Any] = {}
    try:
        root, path = split_locator(locator)
        with open_key(root, path) as handle:
            _, value_count, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
            for index in range(value_count):
                name, value, _ = winreg.EnumValue(handle, index)  # type: ignore[union-attr]
                data[name] = value
    except OSError:
        return {}
    return data


def reg_executable() -> str:
    """!
    @brief Resolve ``reg.exe``, falling back to the bare name.
    """

    return shutil.which("reg") or constants.REG_EXECUTABLE


def export_command(locator: str, destination: Path) -> List[str]:
    """!
    @brief Build the ``reg export`` command line for ``locator``.
    """

    return [reg_executable(), "export", locator, str(destination), "/y", REGISTRY_VIEW_SWITCH]


def delete_command(locator: str) -> List[str]:
    """!
    @brief Build the recursive ``reg delete`` command line for ``locator``.
    """

    return [reg_executable(), "delete", locator, "/f", REGISTRY_VIEW_SWITCH]


__all__ = [
    "RegistryLocatorError",
    "REGISTRY_VIEW_SWITCH",
    "delete_command",
    "export_command",
    "get_value",
    "iter_subkeys",
    "join_locator",
    "key_exists",
    "list_subkeys",
    "open_key",
    "read_values",
    "reg_executable",
    "split_locator",
]
