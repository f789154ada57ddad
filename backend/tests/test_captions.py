"""Tests for caption map processing and merging."""
from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_sync import FileServerConfig  # noqa: E402
from backend.catalog_sync.captions import merge_captions, process_caption_urls, sort_captions  # noqa: E402

FS = FileServerConfig(base_url="http://fs.test", prefix_path="media")


def caption(url: str, modified: str = "2024-03-01T00:00:00Z", lang: str = "en") -> dict[str, str]:
    return {"srcLang": lang, "url": url, "lastModified": modified}


def test_sort_captions_moves_english_entries_first_and_keeps_order() -> None:
    captions = {"Spanish": {}, "English": {}, "French": {}, "English SDH": {}}

    assert list(sort_captions(captions)) == ["English", "English SDH", "Spanish", "French"]


def test_process_caption_urls_builds_full_urls() -> None:
    processed = process_caption_urls(
        {
            "Spanish": caption("/media/movies/A/A.es.srt", lang="es"),
            "English": caption("movies/A/A.en.srt"),
            "Broken": {"srcLang": "xx"},
        },
        FS,
    )

    assert processed == {
        "English": caption("http://fs.test/media/movies/A/A.en.srt"),
        "Spanish": caption("http://fs.test/media/movies/A/A.es.srt", lang="es"),
    }
    assert list(processed) == ["English", "Spanish"]


def test_process_caption_urls_returns_none_without_subtitles() -> None:
    assert process_caption_urls(None, FS) is None
    assert process_caption_urls({}, FS) is None


def test_merge_captions_replaces_only_newer_entries_and_keeps_local_ones() -> None:
    stored = {
        "French": caption("fr-local", lang="fr"),
        "English": caption("en-stored", "2024-03-01T00:00:00Z"),
        "German": caption("de-stored", "2024-03-01T00:00:00Z", lang="de"),
    }
    incoming = {
        "English": caption("en-older", "2024-02-01T00:00:00Z"),
        "German": caption("de-newer", "2024-04-01T00:00:00Z", lang="de"),
        "Spanish": caption("es-new", lang="es"),
    }

    merged = merge_captions(stored, incoming)

    assert list(merged) == ["English", "French", "German", "Spanish"]
    assert merged["English"]["url"] == "en-stored"
    assert merged["German"]["url"] == "de-newer"
    assert merged["French"]["url"] == "fr-local"
    assert merged["Spanish"]["url"] == "es-new"
