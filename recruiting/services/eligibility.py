"""
Eligibility filter deciding whether a player profile satisfies a scouting's requirements.

Pure functions with no database access. Profiles and scoutings are read through
attribute access, so ORM rows and plain objects (e.g. SimpleNamespace in tests)
both work.
"""

from typing import Any, Callable, List, Optional, Tuple


def _role_overlap(profile: Any, scouting: Any) -> bool:
    profile_roles = set(profile.roles or [])
    return any(role in profile_roles for role in (scouting.required_roles or []))


def _device_allowed(profile: Any, scouting: Any) -> bool:
    return profile.device in (scouting.allowed_devices or [])


def _age_in_bounds(profile: Any, scouting: Any) -> bool:
    # An unset bound means no constraint; a bound of 0 is still a bound
    if scouting.min_age is not None and profile.age < scouting.min_age:
        return False
    if scouting.max_age is not None and profile.age > scouting.max_age:
        return False
    return True


def _gender_allowed(profile: Any, scouting: Any) -> bool:
    return profile.gender in (scouting.allowed_genders or [])


def _kd_ratio_met(profile: Any, scouting: Any) -> bool:
    return scouting.min_kd_ratio is None or profile.kd_ratio >= scouting.min_kd_ratio


def _average_damage_met(profile: Any, scouting: Any) -> bool:
    return (
        scouting.min_average_damage is None
        or profile.average_damage >= scouting.min_average_damage
    )


def _ban_history_ok(profile: Any, scouting: Any) -> bool:
    return bool(scouting.ban_history_allowed) or not profile.ban_history


# Evaluated in order; the first failing check decides the result
CHECKS: List[Tuple[str, Callable[[Any, Any], bool]]] = [
    ("roles", _role_overlap),
    ("device", _device_allowed),
    ("age", _age_in_bounds),
    ("gender", _gender_allowed),
    ("kd_ratio", _kd_ratio_met),
    ("average_damage", _average_damage_met),
    ("ban_history", _ban_history_ok),
]


def first_failed_check(profile: Any, scouting: Any) -> Optional[str]:
    """
    Return the name of the first requirement the profile fails, or None.

    Args:
        profile: Player profile (roles, device, age, gender, kd_ratio,
            average_damage, ban_history)
        scouting: Scouting with its eligibility criteria

    Returns:
        Check name such as "device" or "age", or None when every check passes
    """
    for name, check in CHECKS:
        if not check(profile, scouting):
            return name
    return None


def matches(profile: Any, scouting: Any) -> bool:
    """True iff the profile satisfies every requirement of the scouting."""
    return first_failed_check(profile, scouting) is None
