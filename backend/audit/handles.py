"""Normalisation of user supplied Instagram handles and profile URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass

PROFILE_URL_TEMPLATE = "https://instagram.com/{handle}"

# First path segment after the host; the slash is optional for host-only URLs.
_PROFILE_URL = re.compile(r"(?:instagram\.com|instagr\.am)/?([^/?#]*)")

# Top-level paths that name Instagram pages, not accounts.
RESERVED_PATHS = frozenset({"p", "reel", "reels", "stories", "explore", "tv", "accounts"})


def normalize_handle(raw_input: str) -> str:
    """Return the canonical lowercase handle for ``raw_input``.

    Accepts ``handle``, ``@handle`` and profile URLs such as
    ``https://www.instagram.com/handle/?hl=es``. A URL without a profile
    segment, or pointing at a post, reel, story or explore page, yields ``""``.
    """

    value = raw_input.strip().lower()

    match = _PROFILE_URL.search(value)
    if match:
        value = match.group(1)
        if value in RESERVED_PATHS:
            return ""

    if value.startswith("@"):
        value = value[1:]
    return value.strip()


def build_profile_url(handle: str) -> str:
    return PROFILE_URL_TEMPLATE.format(handle=handle)


@dataclass(frozen=True, slots=True)
class AnalysisRequest:
    """A single analysis submission."""

    raw_input: str

    @property
    def canonical_handle(self) -> str:
        return normalize_handle(self.raw_input)

    @property
    def profile_url(self) -> str:
        return build_profile_url(self.canonical_handle)

    @property
    def is_empty(self) -> bool:
        return not self.canonical_handle


__all__ = ["AnalysisRequest", "normalize_handle", "build_profile_url", "RESERVED_PATHS"]
