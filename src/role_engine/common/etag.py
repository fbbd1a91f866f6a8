"""ETag helpers: role versions travel as strong ETags and come back in ``If-Match``."""

from __future__ import annotations

import re

_ETAG = re.compile(r'^(?:W/)?"?(?P<token>[^"]*)"?$')


def canonicalize_etag(value: str | None) -> str | None:
    """Strip the weak prefix and quotes; empty tokens become ``None``."""

    if value is None:
        return None
    match = _ETAG.match(value.strip())
    if match is None:
        return value.strip()
    return match["token"].strip() or None


def version_etag(version: int) -> str:
    return f'"{version}"'


def parse_version_etag(value: str | None) -> int | None:
    """Return the version named by an ``If-Match`` header.

    A missing header or ``*`` means the caller has no expectation. Any other
    value must name a positive integer version or ``ValueError`` is raised.
    """

    token = canonicalize_etag(value)
    if token is None or token == "*":
        return None
    if not token.isdigit() or int(token) < 1:
        raise ValueError(f"Invalid If-Match token: {value!r}")
    return int(token)


__all__ = [
    "canonicalize_etag",
    "parse_version_etag",
    "version_etag",
]
