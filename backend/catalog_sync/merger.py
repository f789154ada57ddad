"""Merge file server seasons and episodes into a show's stored season list."""
from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, Optional

from .captions import process_caption_urls
from .episodes import EpisodeDetails, match_episode_file_name
from .intents import filter_locked_fields
from .listing import FileServerConfig, require_list, require_mapping, season_number
from .metadata_fetcher import MetadataFetcher
from .reconciler import season_metadata_from_show
from .timestamps import is_newer, parse_timestamp

logger = logging.getLogger(__name__)


def build_episode(
    file_name: str,
    details: EpisodeDetails,
    season_entry: Mapping[str, Any],
    file_server: FileServerConfig,
    metadata: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Create an episode document from the file server's entry for ``file_name``."""

    urls = require_mapping(season_entry.get("urls"), "season.urls")
    entry = require_mapping(urls.get(file_name), f"season.urls[{file_name!r}]")
    lengths = require_mapping(season_entry.get("lengths"), "season.lengths")
    dimensions = require_mapping(season_entry.get("dimensions"), "season.dimensions")

    episode: dict[str, Any] = {
        "episodeNumber": details.episode_number,
        "title": details.title,
        "videoURL": file_server.full_url(entry.get("videourl")),
        "mediaLastModified": parse_timestamp(entry.get("mediaLastModified")),
        "length": lengths.get(file_name),
        "dimensions": dimensions.get(file_name),
    }
    if entry.get("thumbnail"):
        episode["thumbnail"] = file_server.full_url(entry["thumbnail"])
    if entry.get("thumbnailBlurhash"):
        episode["thumbnailBlurhash"] = file_server.full_url(entry["thumbnailBlurhash"])
    captions = process_caption_urls(entry.get("subtitles"), file_server)
    if captions:
        episode["captionURLs"] = captions
    if entry.get("chapters"):
        episode["chapterURL"] = file_server.full_url(entry["chapters"])
    if metadata:
        episode["metadata"] = dict(metadata)
    return {key: value for key, value in episode.items() if value is not None}


def _assign(target: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    node = target
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


def _update_unlocked(element: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Write ``updates`` into ``element`` in place, skipping its locked paths."""

    allowed, _ = filter_locked_fields(element, updates)
    for path, value in allowed.items():
        _assign(element, path, value)


def _merge_episode(existing: Mapping[str, Any], fresh: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(dict(existing))
    fresh_wins = is_newer(fresh.get("mediaLastModified"), existing.get("mediaLastModified"))
    _update_unlocked(
        merged,
        {
            key: value
            for key, value in fresh.items()
            if key != "episodeNumber" and (fresh_wins or merged.get(key) in (None, "", {}))
        },
    )
    return merged


def add_or_update_season(
    seasons: list[Mapping[str, Any]],
    season_label: str,
    show_entry: Mapping[str, Any],
    show_metadata: Optional[Mapping[str, Any]],
    file_server: FileServerConfig,
    fetcher: MetadataFetcher,
    show_title: str,
) -> list[dict[str, Any]]:
    """Return a new season list with ``season_label`` added or merged in.

    ``seasons`` is left untouched. A season with no recognisable episode file
    on the file server is not created.
    """

    number = season_number(season_label)
    season_entries = require_mapping(show_entry.get("seasons"), f"tv[{show_title!r}].seasons")
    season_entry = require_mapping(season_entries.get(season_label), f"{show_title} {season_label}")
    file_names = require_list(season_entry.get("fileNames"), f"{show_title} {season_label}.fileNames")
    urls = require_mapping(season_entry.get("urls"), f"{show_title} {season_label}.urls")

    result = [copy.deepcopy(dict(season)) for season in seasons]
    current = next((season for season in result if season.get("seasonNumber") == number), None)
    episodes_by_number: dict[int, dict[str, Any]] = {
        episode["episodeNumber"]: episode
        for episode in (current or {}).get("episodes", [])
        if isinstance(episode.get("episodeNumber"), int)
    }

    found_any = False
    for file_name in file_names:
        details = match_episode_file_name(str(file_name))
        if details is None:
            logger.debug("Skipping unrecognised episode file %s for %s", file_name, show_title)
            continue
        found_any = True

        existing = episodes_by_number.get(details.episode_number)
        entry = require_mapping(urls.get(file_name), f"{show_title} {season_label}.urls[{file_name!r}]")
        needs_metadata = existing is None or not existing.get("metadata") or is_newer(
            entry.get("mediaLastModified"), existing.get("mediaLastModified")
        )
        metadata = None
        if needs_metadata and entry.get("metadata"):
            metadata = fetcher.fetch(entry["metadata"], media_type="tv", title=show_title)
            if metadata is None:
                logger.warning(
                    "TV: metadata unavailable for %s %s episode %s",
                    show_title,
                    season_label,
                    details.episode_number,
                )

        fresh = build_episode(str(file_name), details, season_entry, file_server, metadata)
        if existing is None:
            episodes_by_number[details.episode_number] = fresh
        else:
            episodes_by_number[details.episode_number] = _merge_episode(existing, fresh)

    if not found_any and current is None:
        logger.info("TV: no episode files for %s %s, season not created", show_title, season_label)
        return result

    if current is None:
        current = {"seasonNumber": number, "episodes": []}
        result.append(current)

    season_updates: dict[str, Any] = {
        "episodes": [episodes_by_number[key] for key in sorted(episodes_by_number)],
    }
    season_metadata = season_metadata_from_show(show_metadata, number)
    if season_metadata is not None:
        season_updates["metadata"] = season_metadata
    if season_entry.get("season_poster"):
        season_updates["season_poster"] = file_server.full_url(season_entry["season_poster"])
    if season_entry.get("seasonPosterBlurhash"):
        season_updates["seasonPosterBlurhash"] = file_server.full_url(season_entry["seasonPosterBlurhash"])
    _update_unlocked(current, season_updates)

    result.sort(key=lambda season: season.get("seasonNumber", 0))
    return result
