"""Tests for per-field reconciliation of stored documents."""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_sync import FileServerConfig, MissingAssetError  # noqa: E402
from backend.catalog_sync import reconciler  # noqa: E402
from backend.catalog_sync.reconciler import Target  # noqa: E402

FS = FileServerConfig(base_url="http://fs.test", prefix_path="media")
MOVIE = Target("movie", "Alpha")


def test_target_narrows_to_season_and_episode() -> None:
    episode = Target("tv", "Show").season(2).episode(5)

    assert (episode.title, episode.season_number, episode.episode_number) == ("Show", 2, 5)


def test_normalize_movie_metadata_parses_release_date_without_mutating() -> None:
    original = {"release_date": "2024-02-01", "genres": ["drama"]}

    normalized = reconciler.normalize_movie_metadata(original)

    assert normalized["release_date"] == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert original["release_date"] == "2024-02-01"


def test_season_metadata_from_show_picks_matching_season() -> None:
    show = {"seasons": [{"season_number": 1, "name": "One"}, {"season_number": 2, "name": "Two"}]}

    assert reconciler.season_metadata_from_show(show, 2) == {"season_number": 2, "name": "Two"}
    assert reconciler.season_metadata_from_show(show, 3) is None
    assert reconciler.season_metadata_from_show(None, 1) is None


@pytest.mark.parametrize(
    ("stored", "incoming", "expected"),
    [
        (None, {"last_updated": "2020-01-01"}, True),
        ({"a": 1}, {"a": 1}, False),
        ({"last_updated": "2024-03-01"}, {"last_updated": "2024-04-01"}, True),
        ({"last_updated": "2024-03-01"}, {"last_updated": "2024-02-01"}, False),
        ({"title": "old"}, {"last_updated": "2023-12-01T00:00:00Z"}, False),
        ({"title": "old"}, {"last_updated": "2024-02-01T00:00:00Z"}, True),
        ({"title": "old"}, None, False),
    ],
)
def test_metadata_is_stale(stored, incoming, expected) -> None:
    assert reconciler.metadata_is_stale(stored, incoming) is expected


def test_metadata_update_respects_locked_metadata() -> None:
    document = {"title": "Alpha", "lockedFields": {"metadata": True}}

    assert reconciler.metadata_update(MOVIE, document, {"last_updated": "2025-01-01"}) is None


def test_captions_update_skips_identical_maps_and_reorders_english_first() -> None:
    subtitles = {
        "English": {"srcLang": "en", "url": "/media/a.en.srt", "lastModified": "2024-03-01"},
        "Spanish": {"srcLang": "es", "url": "/media/a.es.srt", "lastModified": "2024-03-01"},
    }
    processed = {
        "English": {"srcLang": "en", "url": "http://fs.test/media/a.en.srt", "lastModified": "2024-03-01"},
        "Spanish": {"srcLang": "es", "url": "http://fs.test/media/a.es.srt", "lastModified": "2024-03-01"},
    }

    assert reconciler.captions_update(MOVIE, {"captionURLs": processed}, subtitles, FS) is None

    reversed_order = {"Spanish": processed["Spanish"], "English": processed["English"]}
    intent = reconciler.captions_update(MOVIE, {"captionURLs": reversed_order}, subtitles, FS)
    assert intent is not None
    assert list(intent.set["captionURLs"]) == ["English", "Spanish"]


def test_asset_update_unsets_field_missing_on_file_server() -> None:
    document = {"chapterURL": "http://fs.test/media/old.vtt"}

    intent = reconciler.chapters_update(MOVIE, document, None, FS)

    assert intent is not None
    assert intent.set == {}
    assert intent.unset == {"chapterURL"}


def test_asset_update_ignores_equivalent_urls() -> None:
    document = {"logo": "http://fs.test/media/movies/Alpha/logo.png"}

    assert reconciler.logo_update(MOVIE, document, "/media/movies/Alpha/logo.png", FS) is None


def test_poster_and_backdrop_updates_never_unset() -> None:
    document = {"posterURL": "http://fs.test/media/p.jpg", "backdrop": "http://fs.test/media/b.jpg"}

    assert reconciler.poster_update(MOVIE, document, "posterURL", None, FS) is None
    assert reconciler.backdrop_update(MOVIE, document, None, FS) is None

    intent = reconciler.poster_update(MOVIE, document, "posterURL", "/media/new.jpg", FS)
    assert intent.set == {"posterURL": "http://fs.test/media/new.jpg"}


def test_thumbnails_update_sets_both_fields() -> None:
    target = Target("tv", "Show", 1, 1)
    entry = {"thumbnail": "/media/t.jpg", "thumbnailBlurhash": "/media/t.blurhash"}

    intent = reconciler.thumbnails_update(target, {}, entry, FS)

    assert intent.level == "episode"
    assert intent.set == {
        "thumbnail": "http://fs.test/media/t.jpg",
        "thumbnailBlurhash": "http://fs.test/media/t.blurhash",
    }


def test_movie_video_file_requires_mp4_file_and_url() -> None:
    entry = {"fileNames": ["Alpha.srt", "Alpha.MP4"], "urls": {"mp4": "/media/Alpha.mp4"}}

    assert reconciler.movie_video_file("Alpha", entry) == "Alpha.MP4"
    with pytest.raises(MissingAssetError):
        reconciler.movie_video_file("Alpha", {"fileNames": ["Alpha.srt"], "urls": {"mp4": "x"}})
    with pytest.raises(MissingAssetError):
        reconciler.movie_video_file("Alpha", {"fileNames": ["Alpha.mp4"], "urls": {}})


def test_video_url_update_records_media_last_modified() -> None:
    intent = reconciler.video_url_update(
        MOVIE, {"videoURL": "http://fs.test/media/old.mp4"}, "/media/new.mp4", FS, "2024-03-01T12:00:00Z"
    )

    assert intent.set == {
        "videoURL": "http://fs.test/media/new.mp4",
        "mediaLastModified": datetime(2024, 3, 1, 12, tzinfo=timezone.utc),
    }
    assert reconciler.video_url_update(MOVIE, {"videoURL": "http://fs.test/media/new.mp4"}, "/media/new.mp4", FS) is None


def test_length_dimensions_update_only_writes_changes() -> None:
    document = {"length": 100, "dimensions": "1920x1080"}

    assert reconciler.length_dimensions_update(MOVIE, document, 100, "1920x1080") is None
    assert reconciler.length_dimensions_update(MOVIE, document, None, None) is None

    intent = reconciler.length_dimensions_update(MOVIE, document, 120, "1920x1080")
    assert intent.set == {"length": 120}
