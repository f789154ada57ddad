"""Caption (subtitle) map processing."""
from __future__ import annotations

from typing import Any, Mapping

from .listing import FileServerConfig, require_mapping
from .timestamps import is_newer

CaptionMap = dict[str, dict[str, Any]]


def sort_captions(captions: Mapping[str, Any]) -> CaptionMap:
    """Return a copy with English-named entries first, other order preserved."""

    return dict(
        sorted(captions.items(), key=lambda item: 0 if "english" in item[0].lower() else 1)
    )


def process_caption_urls(
    subtitles: Mapping[str, Any] | None, file_server: FileServerConfig
) -> CaptionMap | None:
    """Convert a file server subtitle map into stored caption entries."""

    if not subtitles:
        return None

    captions: CaptionMap = {}
    for language, entry in require_mapping(subtitles, "subtitles").items():
        entry = require_mapping(entry, f"subtitles[{language!r}]")
        url = file_server.full_url(entry.get("url"))
        if url is None:
            continue
        captions[language] = {
            "srcLang": entry.get("srcLang"),
            "url": url,
            "lastModified": entry.get("lastModified"),
        }
    return sort_captions(captions) if captions else None


def merge_captions(stored: Mapping[str, Any] | None, incoming: Mapping[str, Any]) -> CaptionMap:
    """Merge file server captions into the stored map.

    A language is replaced only when it is missing locally or the incoming
    ``lastModified`` is strictly newer. Languages only known locally are kept.
    """

    merged: CaptionMap = {language: dict(entry) for language, entry in (stored or {}).items()}
    for language, entry in incoming.items():
        current = merged.get(language)
        if current is None or is_newer(entry.get("lastModified"), current.get("lastModified")):
            merged[language] = dict(entry)
    return sort_captions(merged)
