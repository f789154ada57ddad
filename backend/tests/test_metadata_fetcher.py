"""Tests for metadata sidecar retrieval."""
from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

MOVIE_METADATA = "/media/movies/Alpha/metadata.json"


def test_fetch_returns_payload_and_caches_by_url(file_server) -> None:
    with file_server.fetcher() as fetcher:
        first = fetcher.fetch(MOVIE_METADATA, media_type="movie", title="Alpha")
        second = fetcher.fetch(f"http://fs.test{MOVIE_METADATA}", media_type="movie", title="Alpha")

    assert first == file_server.metadata[MOVIE_METADATA]
    assert second is first
    assert file_server.requests == [MOVIE_METADATA]


def test_fetch_returns_none_for_missing_documents(file_server) -> None:
    with file_server.fetcher() as fetcher:
        assert fetcher.fetch("/media/movies/Nope/metadata.json", media_type="movie", title="Nope") is None
        assert fetcher.fetch(None) is None
        assert fetcher.fetch("") is None


def test_fetch_rejects_non_object_payloads(file_server) -> None:
    file_server.metadata["/media/movies/List/metadata.json"] = ["not", "an", "object"]

    with file_server.fetcher() as fetcher:
        assert fetcher.fetch("/media/movies/List/metadata.json") is None
