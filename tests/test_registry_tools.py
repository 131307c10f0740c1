"""!
@brief Tests for :mod:`policy_purge.registry_tools`.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from policy_purge import constants, registry_tools


@pytest.mark.parametrize(
    "locator, root, subpath",
    [
        (r"HKLM\SOFTWARE\Policies", constants.HKLM, r"SOFTWARE\Policies"),
        (r"HKEY_LOCAL_MACHINE\SOFTWARE\Policies", constants.HKLM, r"SOFTWARE\Policies"),
        (r"hku\S-1-5-21-1\Software\Policies", constants.HKU, r"S-1-5-21-1\Software\Policies"),
        ("HKCU", constants.HKCU, ""),
    ],
)
def test_split_locator(locator: str, root: int, subpath: str) -> None:
    assert registry_tools.split_locator(locator) == (root, subpath)


def test_split_locator_rejects_unknown_hive() -> None:
    with pytest.raises(registry_tools.RegistryLocatorError):
        registry_tools.split_locator(r"HKXX\SOFTWARE")


def test_join_locator_collapses_separators() -> None:
    assert registry_tools.join_locator("HKU\\", "\\S-1-5-21-1", "", r"Software\Policies") == (
        r"HKU\S-1-5-21-1\Software\Policies"
    )


def test_export_and_delete_commands(monkeypatch) -> None:
    monkeypatch.setattr(registry_tools.shutil, "which", lambda _name: None)

    export = registry_tools.export_command(r"HKLM\SOFTWARE\Policies", Path("backup") / "HKLM Policies.reg")
    delete = registry_tools.delete_command(r"HKLM\SOFTWARE\Policies")

    assert export == [
        "reg.exe",
        "export",
        r"HKLM\SOFTWARE\Policies",
        str(Path("backup") / "HKLM Policies.reg"),
        "/y",
        "/reg:64",
    ]
    assert delete == ["reg.exe", "delete", r"HKLM\SOFTWARE\Policies", "/f", "/reg:64"]


def test_readers_degrade_without_winreg(monkeypatch) -> None:
    monkeypatch.setattr(registry_tools, "winreg", None)

    assert registry_tools.key_exists(r"HKLM\SOFTWARE\Policies") is False
    assert registry_tools.list_subkeys(r"HKLM\SOFTWARE\Microsoft\Enrollments") == []
    assert registry_tools.get_value(r"HKLM\SOFTWARE", "x", "fallback") == "fallback"
    assert registry_tools.read_values(r"HKLM\SOFTWARE") == {}


def test_commands_use_the_view_open_key_reads(monkeypatch) -> None:
    """!
    @brief A 32-bit ``SysWOW64\\reg.exe`` must still target the 64-bit keys
    that the existence check saw.
    """

    monkeypatch.setattr(registry_tools.shutil, "which", lambda _name: r"C:\Windows\SysWOW64\reg.exe")

    for command in (
        registry_tools.export_command(r"HKLM\SOFTWARE\Policies", Path("x.reg")),
        registry_tools.delete_command(r"HKLM\SOFTWARE\Policies"),
    ):
        assert command[0] == r"C:\Windows\SysWOW64\reg.exe"
        assert command.count("/reg:64") == 1
