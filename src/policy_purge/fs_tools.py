"""!
@brief Filesystem primitives for policy cache removal.
@details Thin wrappers over :mod:`shutil` and :mod:`os` that raise ``OSError``
on failure. They are never called directly by the removal components: the
dry-run gate wraps each one so a preview run cannot reach them.
"""
from __future__ import annotations

import os
import re
import shutil
import stat
import sys
from pathlib import Path

from . import constants

_WINDOWS_VARIABLE = re.compile(r"%([^%\\/]+)%")


def _lookup_variable(match: "re.Match[str]") -> str:
    name = match.group(1)
    value = os.environ.get(name)
    if value is None:
        value = os.environ.get(name.upper())
    return value if value is not None else match.group(0)


def resolve_path(locator: str | os.PathLike[str]) -> Path:
    """!
    @brief Expand ``%VAR%``, ``$VAR`` and ``~`` references in a filesystem locator.
    @details Unknown variables are left untouched. Off Windows, backslash
    separators are converted so catalog paths stay usable on test hosts.
    """

    text = _WINDOWS_VARIABLE.sub(_lookup_variable, os.fspath(locator))
    text = os.path.expanduser(os.path.expandvars(text))
    if os.sep != "\\":
        text = text.replace("\\", os.sep)
    return Path(text)


def path_exists(locator: str | os.PathLike[str]) -> bool:
    return resolve_path(locator).exists()


def get_default_log_directory() -> Path:
    """!
    @brief Resolve the default log directory, falling back to the temp dir
    when ``%ProgramData%`` is not defined.
    """

    if os.environ.get("ProgramData") or os.environ.get("PROGRAMDATA"):
        return resolve_path(constants.DEFAULT_LOG_DIRECTORY)
    return Path(os.environ.get("TEMP", "/tmp")) / "PolicyPurge" / "logs"


def get_default_backup_base() -> Path:
    if os.environ.get("SystemDrive") or os.environ.get("SYSTEMDRIVE"):
        return resolve_path(constants.DEFAULT_BACKUP_BASE)
    return Path(os.environ.get("TEMP", "/tmp")) / "PolicyBackups"


def _handle_readonly(function, path, exc) -> None:  # pragma: no cover - Windows attribute quirk
    """!
    @brief Clear the read-only attribute and retry a failed removal.
    @details Accepts both the ``onerror`` (exc_info tuple) and ``onexc``
    (exception instance) callback conventions.
    """

    error = exc[1] if isinstance(exc, tuple) else exc
    if isinstance(error, PermissionError):
        os.chmod(path, stat.S_IWRITE)
        function(path)
    else:
        raise error


def make_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def copy_tree(source: Path, destination: Path) -> None:
    """!
    @brief Recursively copy ``source`` (a directory or a single file).
    """

    if source.is_dir():
        shutil.copytree(source, destination)
    else:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)


def delete_tree(target: Path) -> None:
    """!
    @brief Recursively delete ``target``; read-only entries are retried once
    with the attribute cleared.
    """

    if target.is_dir() and not target.is_symlink():
        if sys.version_info >= (3, 12):
            shutil.rmtree(target, onexc=_handle_readonly)
        else:  # pragma: no cover - interpreter dependent
            shutil.rmtree(target, onerror=_handle_readonly)
        return
    try:
        target.unlink()
    except PermissionError:
        os.chmod(target, stat.S_IWRITE)
        target.unlink()


def rename(source: Path, destination: Path) -> None:
    """!
    @brief Move ``source`` to ``destination``, replacing an existing tree.
    """

    if destination.exists():
        delete_tree(destination)
    os.replace(source, destination)


__all__ = [
    "copy_tree",
    "delete_tree",
    "get_default_backup_base",
    "get_default_log_directory",
    "make_directory",
    "path_exists",
    "rename",
    "resolve_path",
]
