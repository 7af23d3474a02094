from typing import Any

from profilelens.core.exceptions import NoProfileDataError

# Wrapper keys some scraper responses nest the profile under, tried in order
_WRAPPER_KEYS = ("data", "profile", "profiles")


def _first(value: Any) -> dict[str, Any] | None:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) and value else None


def extract_profile_payload(payload: Any) -> dict[str, Any]:
    """
    Pull the single profile dict out of a scraper response.

    Accepts a list of profiles (first one wins), a mapping that nests the
    profile under "data", "profile" or "profiles" (the first key holding a
    usable profile wins), or a bare profile mapping.

    Raises:
        NoProfileDataError: when no profile can be found.
    """
    if isinstance(payload, list):
        profile = _first(payload)
        if profile is None:
            raise NoProfileDataError()
        return profile

    if isinstance(payload, dict):
        wrapped = False
        for key in _WRAPPER_KEYS:
            if key not in payload:
                continue
            wrapped = True
            profile = _first(payload[key])
            if profile is not None:
                return profile
        if payload and not wrapped:
            return payload
    raise NoProfileDataError()
