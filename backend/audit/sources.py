"""Grounding citation handling."""

from __future__ import annotations

from typing import Any, Iterable, List

from audit.handles import build_profile_url
from audit.models import DEFAULT_SOURCE_TITLE, Source
from core.config import SourceFallback


def extract_sources(grounding_chunks: Iterable[Any]) -> List[Source]:
    """Map Gemini grounding chunks with a web reference to ``Source`` entries.

    Order is preserved and repeated URIs are reported once.
    """

    sources: List[Source] = []
    seen = set()
    for chunk in grounding_chunks or []:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None) if web is not None else None
        if not uri or uri in seen:
            continue
        seen.add(uri)
        title = (getattr(web, "title", None) or "").strip() or DEFAULT_SOURCE_TITLE
        sources.append(Source(title=title, uri=uri))
    return sources


def apply_source_fallback(sources: List[Source], handle: str, policy: SourceFallback) -> List[Source]:
    if sources or policy is SourceFallback.NONE:
        return sources
    return [Source(title=f"Perfil de Instagram @{handle}", uri=build_profile_url(handle))]


__all__ = ["extract_sources", "apply_source_fallback"]
