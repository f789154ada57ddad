"""Tests for merging file server seasons into stored shows."""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_sync.merger import add_or_update_season  # noqa: E402

ROOT = "http://fs.test/media/tv/Show/Season1"
MODIFIED = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)


def merge(file_server, seasons, label="Season 1"):
    show_entry = file_server.listing["tv"]["Show"]
    show_metadata = file_server.metadata["/media/tv/Show/metadata.json"]
    with file_server.fetcher() as fetcher:
        return add_or_update_season(
            seasons, label, show_entry, show_metadata, file_server.config, fetcher, "Show"
        )


def test_new_season_is_built_from_listing(file_server) -> None:
    seasons = merge(file_server, [])

    assert [season["seasonNumber"] for season in seasons] == [1]
    season = seasons[0]
    assert season["metadata"]["name"] == "Season 1"
    assert season["season_poster"] == f"{ROOT}/season_poster.jpg"
    assert season["seasonPosterBlurhash"] == f"{ROOT}/season_poster.blurhash"

    pilot, second = season["episodes"]
    assert pilot["episodeNumber"] == 1
    assert pilot["title"] == "Pilot"
    assert pilot["videoURL"] == f"{ROOT}/S01E01.mp4"
    assert pilot["mediaLastModified"] == MODIFIED
    assert pilot["length"] == 1500000
    assert pilot["thumbnail"] == f"{ROOT}/S01E01.jpg"
    assert pilot["chapterURL"] == f"{ROOT}/S01E01.vtt"
    assert list(pilot["captionURLs"]) == ["English"]
    assert pilot["metadata"] == {"name": "Pilot", "last_updated": "2024-03-01T00:00:00Z"}
    assert second["episodeNumber"] == 2
    assert "thumbnail" not in second


def test_season_without_episode_files_is_not_created(file_server) -> None:
    existing = [{"seasonNumber": 1, "episodes": []}]

    assert merge(file_server, existing, "Season 2") == existing


def test_existing_episode_keeps_curated_fields_and_skips_metadata_fetch(file_server) -> None:
    existing = [
        {
            "seasonNumber": 1,
            "episodes": [
                {
                    "episodeNumber": 1,
                    "title": "Custom title",
                    "mediaLastModified": MODIFIED,
                    "metadata": {"name": "Curated"},
                }
            ],
        }
    ]

    seasons = merge(file_server, existing)

    pilot, second = seasons[0]["episodes"]
    assert pilot["title"] == "Custom title"
    assert pilot["metadata"] == {"name": "Curated"}
    assert pilot["videoURL"] == f"{ROOT}/S01E01.mp4"
    assert second["metadata"]["name"] == "Second"
    assert "/media/tv/Show/Season1/S01E01.json" not in file_server.requests
    assert existing[0]["episodes"][0].get("videoURL") is None


def test_newer_file_replaces_stored_episode_fields(file_server) -> None:
    existing = [
        {
            "seasonNumber": 1,
            "episodes": [
                {
                    "episodeNumber": 1,
                    "title": "Old title",
                    "videoURL": f"{ROOT}/old.mp4",
                    "mediaLastModified": datetime(2023, 1, 1, tzinfo=timezone.utc),
                    "metadata": {"name": "Old"},
                }
            ],
        }
    ]

    pilot = merge(file_server, existing)[0]["episodes"][0]

    assert pilot["title"] == "Pilot"
    assert pilot["videoURL"] == f"{ROOT}/S01E01.mp4"
    assert pilot["metadata"]["name"] == "Pilot"


def test_seasons_stay_sorted(file_server) -> None:
    seasons = merge(file_server, [{"seasonNumber": 3, "episodes": []}])

    assert [season["seasonNumber"] for season in seasons] == [1, 3]


def test_newer_file_leaves_locked_episode_fields_alone(file_server) -> None:
    existing = [
        {
            "seasonNumber": 1,
            "episodes": [
                {
                    "episodeNumber": 1,
                    "title": "Curated pilot",
                    "videoURL": f"{ROOT}/old.mp4",
                    "mediaLastModified": datetime(2023, 1, 1, tzinfo=timezone.utc),
                    "metadata": {"name": "Curated", "last_updated": "2023-01-01T00:00:00Z"},
                    "lockedFields": {"title": True, "metadata": {"name": True}},
                }
            ],
        }
    ]

    pilot = merge(file_server, existing)[0]["episodes"][0]

    assert pilot["title"] == "Curated pilot"
    assert pilot["metadata"] == {"name": "Curated", "last_updated": "2024-03-01T00:00:00Z"}
    assert pilot["videoURL"] == f"{ROOT}/S01E01.mp4"
    assert pilot["lockedFields"] == {"title": True, "metadata": {"name": True}}


def test_locked_season_fields_are_not_overwritten(file_server) -> None:
    existing = [
        {
            "seasonNumber": 1,
            "season_poster": "http://cdn.example/season.jpg",
            "metadata": {"name": "Curated season"},
            "episodes": [],
            "lockedFields": {"season_poster": True, "metadata": True},
        }
    ]

    season = merge(file_server, existing)[0]

    assert season["season_poster"] == "http://cdn.example/season.jpg"
    assert season["metadata"] == {"name": "Curated season"}
    assert season["seasonPosterBlurhash"] == f"{ROOT}/season_poster.blurhash"
    assert [episode["episodeNumber"] for episode in season["episodes"]] == [1, 2]
