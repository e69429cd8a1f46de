from __future__ import annotations

import re
from urllib.parse import urlsplit

# RFC 3986 scheme: a letter followed by letters, digits, "+", "-" or "."
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def validate_url(url: str, *, require_protocol: bool = False) -> bool:
    """
    Return True when `url` is a syntactically valid URL.

    With `require_protocol`, the string must carry a scheme followed by "://" or
    at least a non-empty remainder ("exp://host:8081", "myapp://path",
    "https://example.com"). Strings without a scheme, such as bundle identifiers
    ("com.example.app") or Android component references ("pkg/.MainActivity"),
    are rejected.
    """
    if not url or any(ch.isspace() for ch in url):
        return False

    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    if not parts.scheme:
        return not require_protocol and bool(parts.path or parts.netloc)
    if not _SCHEME_RE.match(parts.scheme):
        return False
    # "com.example.app:" is a bare scheme; "localhost:8081" keeps "8081" as its path
    # and is accepted
    if "://" not in url and not parts.path.strip("/"):
        return False
    if parts.scheme in ("http", "https") and not parts.netloc:
        return False
    return True
