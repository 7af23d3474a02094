import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import unquote, urlsplit

from profilelens.core.config import settings
from profilelens.core.exceptions import ValidationError
from profilelens.models.analysis import CacheVerdict
from profilelens.models.profile import ProfileRecord
from profilelens.models.user import UserObject

PROFILE_PATH_MARKER = "in"


def normalize_profile_url(raw: str, default_host: str | None = None) -> str:
    """Derive the canonical key for a profile URL or bare profile slug.

    Scheme, "www.", query string, fragment and trailing slashes are ignored and
    the host is lower-cased, so every spelling of the same profile maps to one
    key of the form "{host}/in/{slug}". Pure function, no I/O.

    Raises:
        ValidationError: if no profile segment can be extracted.
    """
    if raw is None or not str(raw).strip():
        raise ValidationError("Profile URL or identifier is required")

    value = str(raw).strip()
    host = (default_host or settings.PROFILE_HOST).lower()

    if "/" not in value and "." not in value:
        # Bare slug such as "john-doe"
        slug = unquote(value).strip()
        if not slug:
            raise ValidationError(f"Invalid profile identifier: {raw!r}")
        return f"{host}/{PROFILE_PATH_MARKER}/{slug}"

    if "://" not in value:
        first_segment = value.lstrip("/").split("/", 1)[0]
        if value.startswith("/") or "." not in first_segment:
            # Host-less path such as "in/john-doe" or "/in/john-doe"
            value = f"https://{host}/{value.lstrip('/')}"
        else:
            value = f"https://{value}"

    parts = urlsplit(value)
    netloc = (parts.hostname or "").lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    if not netloc:
        raise ValidationError(f"Invalid profile URL: {raw!r}")

    segments = [unquote(seg).strip() for seg in parts.path.split("/") if seg.strip()]
    if PROFILE_PATH_MARKER in segments:
        index = segments.index(PROFILE_PATH_MARKER)
        if index + 1 >= len(segments):
            raise ValidationError(f"Profile URL has no profile segment: {raw!r}")
        slug = segments[index + 1]
    elif segments:
        slug = "/".join(segments)
    else:
        raise ValidationError(f"Profile URL has no profile segment: {raw!r}")

    return f"{netloc}/{PROFILE_PATH_MARKER}/{slug}"


def canonical_url(canonical_key: str) -> str:
    return f"https://{canonical_key}"


def extract_profile_id(profile: ProfileRecord | dict[str, Any] | None) -> str | None:
    """Pick the scraper's profile identifier: profileId, then id, then publicIdentifier."""
    if profile is None:
        return None
    if isinstance(profile, ProfileRecord):
        return profile.profile_id
    for key in ("profileId", "profile_id", "id", "publicIdentifier"):
        value = profile.get(key)
        if value:
            return str(value)
    return None


def derive_user_id(profile_id: str | None, canonical_key: str) -> str:
    """Stable document id for the user object of a profile."""
    material = f"{profile_id or 'unknown'}|{canonical_key}".encode("utf-8")
    return f"user_{hashlib.sha256(material).hexdigest()[:32]}"


def check_freshness(
    user_object: UserObject | None,
    now: datetime | None = None,
    window: timedelta | None = None,
) -> CacheVerdict:
    """
    Decide whether a stored user object can be served without re-fetching.

    Valid only when 0 <= now - timestamp < window. A missing timestamp or one
    in the future is never treated as fresh.
    """
    if user_object is None:
        return CacheVerdict(valid=False)

    window = window if window is not None else timedelta(hours=settings.CACHE_FRESHNESS_HOURS)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    stamp = user_object.timestamp
    if stamp is None:
        return CacheVerdict(valid=False, record=user_object)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)

    age = now - stamp
    if age < timedelta(0):
        return CacheVerdict(valid=False, record=user_object, age=age)
    return CacheVerdict(valid=age < window, record=user_object, age=age)
