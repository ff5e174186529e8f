import re
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlsplit

# Base62 alphabet; shortcodes are case-sensitive
ALPHABET = string.ascii_letters + string.digits
SHORT_CODE_LENGTH = 6
MAX_SHORT_CODE_LENGTH = 20
MAX_URL_LENGTH = 2048

# Paths the API owns; a shortcode with one of these names could never be redirected.
RESERVED_SHORT_CODES = frozenset({"shorturls", "health"})

_SHORT_CODE_RE = re.compile(r"^[A-Za-z0-9]{1,%d}$" % MAX_SHORT_CODE_LENGTH)
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    """Generate a cryptographically secure random alphanumeric code."""
    return ''.join(secrets.choice(ALPHABET) for _ in range(length))


def is_valid_short_code(code: Optional[str]) -> bool:
    return bool(code) and _SHORT_CODE_RE.match(code) is not None


def is_valid_url(url: Optional[str]) -> bool:
    """
    Accept any syntactically absolute URI: a scheme followed by a non-empty
    remainder. Web schemes must also name a host.
    """
    if not url or len(url) > MAX_URL_LENGTH:
        return False
    if any(ch.isspace() or ord(ch) < 0x20 for ch in url):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in ("http", "https", "ftp", "ws", "wss"):
        return bool(parts.hostname)
    return bool(parts.netloc or parts.path)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def minutes_from(start: datetime, minutes: int) -> datetime:
    return start + timedelta(minutes=minutes)


def iso_z(dt: datetime) -> str:
    return as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")
