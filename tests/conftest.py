"""!
@brief Shared pytest fixtures for Policy Purge.
@details Provides an in-memory registry and command runner so the engine can
be exercised on any host. :class:`FakeSystem` replaces the ``winreg`` readers
in :mod:`policy_purge.registry_tools` and
:func:`policy_purge.exec_utils.run_command`, answering ``reg export``,
``reg delete``, ``dsregcmd`` and ``gpupdate`` the way Windows would.
"""

from __future__ import annotations

import pathlib
import sys
from typing import Dict, List

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from policy_purge import exec_utils, registry_tools  # noqa: E402
from policy_purge.context import RunContext  # noqa: E402


def _norm(locator: str) -> str:
    return str(locator).strip().strip("\\").upper()


class FakeSystem:
    """!
    @brief Dictionary-backed registry plus scripted external commands.
    """

    def __init__(self) -> None:
        self.keys: Dict[str, str] = {}
        self.values: Dict[str, Dict[str, object]] = {}
        self.commands: List[List[str]] = []
        self.export_failures: set[str] = set()
        self.delete_failures: set[str] = set()
        self.dsregcmd_status = "AzureAdJoined : NO\n"
        self.leave_returncode = 0
        self.gpupdate_returncode = 0

    # registry ---------------------------------------------------------

    def add_key(self, locator: str, **values: object) -> None:
        parts = locator.strip("\\").split("\\")
        for index in range(1, len(parts) + 1):
            partial = "\\".join(parts[:index])
            self.keys.setdefault(_norm(partial), partial)
        if values:
            self.values.setdefault(_norm(locator), {}).update(values)

    def key_exists(self, locator: str) -> bool:
        return _norm(locator) in self.keys

    def list_subkeys(self, locator: str) -> List[str]:
        prefix = _norm(locator) + "\\"
        names: List[str] = []
        for normalized, original in self.keys.items():
            if normalized.startswith(prefix) and "\\" not in normalized[len(prefix):]:
                names.append(original.split("\\")[-1])
        return names

    def get_value(self, locator: str, name: str, default=None):
        return self.values.get(_norm(locator), {}).get(name, default)

    def read_values(self, locator: str) -> Dict[str, object]:
        return dict(self.values.get(_norm(locator), {}))

    def snapshot(self) -> tuple:
        return (
            tuple(sorted(self.keys)),
            tuple(sorted((key, tuple(sorted(vals.items()))) for key, vals in self.values.items())),
        )

    # commands ---------------------------------------------------------

    def run_command(self, command, *, event, timeout=None, extra=None, env=None):
        command_list = [str(part) for part in command]
        self.commands.append(command_list)
        tool = pathlib.PureWindowsPath(command_list[0]).name.lower()
        returncode = 0
        stdout = ""

        if tool in {"reg", "reg.exe"} and command_list[1] == "export":
            locator, destination = command_list[2], command_list[3]
            if _norm(locator) in self.export_failures or not self.key_exists(locator):
                returncode = 1
            elif not pathlib.Path(destination).parent.is_dir():
                returncode = 1
            else:
                pathlib.Path(destination).write_text(f"; export of {locator}\n", encoding="utf-8")
        elif tool in {"reg", "reg.exe"} and command_list[1] == "delete":
            locator = _norm(command_list[2])
            if locator in self.delete_failures or locator not in self.keys:
                returncode = 1
            else:
                for key in [k for k in self.keys if k == locator or k.startswith(locator + "\\")]:
                    del self.keys[key]
                    self.values.pop(key, None)
        elif tool == "dsregcmd.exe" and command_list[1] == "/status":
            stdout = self.dsregcmd_status
        elif tool == "dsregcmd.exe" and command_list[1] == "/leave":
            returncode = self.leave_returncode
        elif tool == "gpupdate.exe":
            returncode = self.gpupdate_returncode

        return exec_utils.CommandResult(
            command=command_list,
            returncode=returncode,
            stdout=stdout,
            stderr="",
            duration=0.0,
        )

    def ran(self, tool: str, argument: str | None = None) -> List[List[str]]:
        matches = []
        for command in self.commands:
            if pathlib.PureWindowsPath(command[0]).name.lower() != tool:
                continue
            if argument is None or argument in command:
                matches.append(command)
        return matches


@pytest.fixture
def fake_system(monkeypatch) -> FakeSystem:
    """!
    @brief Install a :class:`FakeSystem` in place of registry and process access.
    """

    system = FakeSystem()
    monkeypatch.setattr(registry_tools, "key_exists", system.key_exists)
    monkeypatch.setattr(registry_tools, "list_subkeys", system.list_subkeys)
    monkeypatch.setattr(registry_tools, "get_value", system.get_value)
    monkeypatch.setattr(registry_tools, "read_values", system.read_values)
    monkeypatch.setattr(registry_tools, "reg_executable", lambda: "reg.exe")
    monkeypatch.setattr(exec_utils, "run_command", system.run_command)
    return system


@pytest.fixture
def make_context(tmp_path):
    """!
    @brief Factory for fresh :class:`RunContext` objects rooted in ``tmp_path``.
    """

    def _factory(*, create_root: bool = True, **kwargs) -> RunContext:
        kwargs.setdefault("settle_seconds", 0)
        root = tmp_path / "backups" / "run"
        if create_root:
            root.mkdir(parents=True, exist_ok=True)
        return RunContext(root, **kwargs)

    return _factory
