"""!
@brief User-hive enumerator.
@details Profiles are read from the ``ProfileList`` catalog; only accounts
whose hive is currently mounted under ``HKU\\<SID>`` (logged-in users) are
actionable. Hives are never loaded by this tool, so settings of logged-out
users are left alone and an unmounted profile is reported once and not
retried.
"""
from __future__ import annotations

import os
from typing import Iterator, List

from . import constants, registry_tools
from .context import RunContext
from .models import UserContext


def is_user_sid(sid: str) -> bool:
    """!
    @brief ``True`` for ordinary local, domain and Azure AD account SIDs.
    @details Well-known service SIDs (``S-1-5-18`` and friends) and the
    ``_Classes`` companion hives are excluded.
    """

    if sid.endswith("_Classes"):
        return False
    return sid.upper().startswith(tuple(prefix.upper() for prefix in constants.USER_SID_PREFIXES))


def discover_profiles() -> List[UserContext]:
    """!
    @brief List every non-special profile with its live hive-mount state.
    """

    profiles: List[UserContext] = []
    for sid in registry_tools.list_subkeys(constants.PROFILE_LIST_KEY):
        if not is_user_sid(sid):
            continue
        profile_key = registry_tools.join_locator(constants.PROFILE_LIST_KEY, sid)
        raw_path = registry_tools.get_value(profile_key, "ProfileImagePath", "") or ""
        profiles.append(
            UserContext(
                security_identifier=sid,
                profile_path=os.path.expandvars(str(raw_path)),
                hive_loaded=registry_tools.key_exists(registry_tools.join_locator("HKU", sid)),
            )
        )
    return profiles


def iter_loaded_users(ctx: RunContext) -> Iterator[UserContext]:
    """!
    @brief Lazily yield profiles whose hive is mounted.
    @details Each unmounted profile produces one INFO line. When the sequence
    is exhausted without yielding anything a WARN is logged; zero profiles is
    not an error.
    """

    profiles = discover_profiles()
    ctx.info("Found %d user profile(s)", len(profiles), event="profiles_discovered", count=len(profiles))

    yielded = 0
    for profile in profiles:
        if not profile.hive_loaded:
            ctx.info(
                "Hive not loaded for %s (%s); user is not logged in, skipping",
                profile.security_identifier,
                profile.profile_path or "unknown path",
                event="hive_not_loaded",
                sid=profile.security_identifier,
            )
            continue
        yielded += 1
        yield profile

    if yielded == 0:
        ctx.warn(
            "No loaded user hives found; per-user policies were not processed",
            event="no_loaded_hives",
        )


__all__ = ["discover_profiles", "is_user_sid", "iter_loaded_users"]
