"""
Field reconciliation: compare a stored catalog entity with what the file
server reports and describe the minimal write as an :class:`UpdateIntent`.

Every function here is pure. Fetching and persistence belong to the caller.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .captions import merge_captions, process_caption_urls
from .errors import MissingAssetError
from .intents import MediaType, UpdateIntent, build_intent
from .listing import FileServerConfig
from .timestamps import METADATA_FLOOR, is_newer, parse_timestamp

logger = logging.getLogger(__name__)

FAMILY_MISSING = "missing_media"
FAMILY_METADATA = "metadata"
FAMILY_CAPTIONS = "captions"
FAMILY_CHAPTERS = "chapters"
FAMILY_VIDEO_URL = "video_url"
FAMILY_LOGOS = "logos"
FAMILY_BLURHASH = "blurhash"
FAMILY_LENGTH_DIMENSIONS = "length_and_dimensions"
FAMILY_THUMBNAILS = "episode_thumbnails"
FAMILY_POSTERS = "poster_urls"
FAMILY_BACKDROPS = "backdrops"


@dataclass(frozen=True, slots=True)
class Target:
    """Identifies the movie, show, season or episode an intent writes to."""

    media_type: MediaType
    title: str
    season_number: Optional[int] = None
    episode_number: Optional[int] = None

    def season(self, season_number: int) -> "Target":
        return Target(self.media_type, self.title, season_number)

    def episode(self, episode_number: int) -> "Target":
        return Target(self.media_type, self.title, self.season_number, episode_number)

    def intent(
        self,
        document: Optional[Mapping[str, Any]],
        family: str,
        set_fields: Optional[Mapping[str, Any]] = None,
        unset_fields: Optional[set[str]] = None,
        *,
        upsert: bool = False,
    ) -> Optional[UpdateIntent]:
        return build_intent(
            document,
            media_type=self.media_type,
            title=self.title,
            family=family,
            set_fields=set_fields,
            unset_fields=unset_fields,
            season_number=self.season_number,
            episode_number=self.episode_number,
            upsert=upsert,
        )


# -- metadata -----------------------------------------------------------------


def normalize_movie_metadata(metadata: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy with ``release_date`` parsed into a datetime when possible."""

    normalized = copy.deepcopy(dict(metadata))
    release_date = normalized.get("release_date")
    if isinstance(release_date, str):
        parsed = parse_timestamp(release_date)
        if parsed is not None:
            normalized["release_date"] = parsed
    return normalized


def season_metadata_from_show(
    show_metadata: Optional[Mapping[str, Any]], season_number: int
) -> Optional[dict[str, Any]]:
    """Pick the ``seasons`` entry of a show metadata document for one season."""

    if not show_metadata:
        return None
    for entry in show_metadata.get("seasons") or []:
        if isinstance(entry, Mapping) and entry.get("season_number") == season_number:
            return copy.deepcopy(dict(entry))
    return None


def metadata_is_stale(
    stored: Optional[Mapping[str, Any]], incoming: Optional[Mapping[str, Any]]
) -> bool:
    """Decide whether ``incoming`` metadata should replace ``stored``.

    Absent stored metadata is always replaced. Otherwise the incoming
    ``last_updated`` must be strictly newer than the stored one, with stored
    documents lacking a timestamp compared against ``METADATA_FLOOR``.
    """

    if not incoming:
        return False
    if not stored:
        return True
    if stored == incoming:
        return False
    return is_newer(incoming.get("last_updated"), stored.get("last_updated"), floor=METADATA_FLOOR)


def metadata_update(
    target: Target,
    document: Optional[Mapping[str, Any]],
    incoming: Optional[Mapping[str, Any]],
) -> Optional[UpdateIntent]:
    stored = (document or {}).get("metadata")
    if not metadata_is_stale(stored, incoming):
        return None
    return target.intent(document, FAMILY_METADATA, {"metadata": dict(incoming or {})})


# -- captions -----------------------------------------------------------------


def captions_update(
    target: Target,
    document: Optional[Mapping[str, Any]],
    subtitles: Optional[Mapping[str, Any]],
    file_server: FileServerConfig,
) -> Optional[UpdateIntent]:
    """Merge file server subtitles into ``captionURLs``; write only on a real change."""

    incoming = process_caption_urls(subtitles, file_server)
    if not incoming:
        return None
    stored = (document or {}).get("captionURLs")
    merged = merge_captions(stored, incoming)
    # Key order is part of the stored value.
    if stored is not None and list(stored.items()) == list(merged.items()):
        return None
    return target.intent(document, FAMILY_CAPTIONS, {"captionURLs": merged})


# -- URL-valued assets ----------------------------------------------------------


def asset_changes(
    document: Optional[Mapping[str, Any]],
    fields: Mapping[str, Optional[str]],
    file_server: FileServerConfig,
    *,
    unset_missing: bool,
) -> tuple[dict[str, Any], set[str]]:
    """Compare stored URL fields with file server paths.

    ``fields`` maps a stored field name to the path the file server reports
    for it (or ``None`` when the file server has nothing).
    """

    document = document or {}
    set_fields: dict[str, Any] = {}
    unset_fields: set[str] = set()
    for field, path in fields.items():
        stored = document.get(field)
        url = file_server.full_url(path)
        if url is None:
            if unset_missing and stored is not None:
                unset_fields.add(field)
            continue
        if not file_server.same_asset(stored, url):
            set_fields[field] = url
    return set_fields, unset_fields


def asset_update(
    target: Target,
    document: Optional[Mapping[str, Any]],
    family: str,
    fields: Mapping[str, Optional[str]],
    file_server: FileServerConfig,
    *,
    unset_missing: bool = True,
) -> Optional[UpdateIntent]:
    set_fields, unset_fields = asset_changes(
        document, fields, file_server, unset_missing=unset_missing
    )
    return target.intent(document, family, set_fields, unset_fields)


def chapters_update(target, document, path, file_server) -> Optional[UpdateIntent]:
    return asset_update(target, document, FAMILY_CHAPTERS, {"chapterURL": path}, file_server)


def logo_update(target, document, path, file_server) -> Optional[UpdateIntent]:
    return asset_update(target, document, FAMILY_LOGOS, {"logo": path}, file_server)


def blurhash_update(target, document, fields, file_server) -> Optional[UpdateIntent]:
    return asset_update(target, document, FAMILY_BLURHASH, fields, file_server)


def thumbnails_update(target, document, entry, file_server) -> Optional[UpdateIntent]:
    entry = entry or {}
    return asset_update(
        target,
        document,
        FAMILY_THUMBNAILS,
        {"thumbnail": entry.get("thumbnail"), "thumbnailBlurhash": entry.get("thumbnailBlurhash")},
        file_server,
    )


def poster_update(target, document, field, path, file_server) -> Optional[UpdateIntent]:
    return asset_update(
        target, document, FAMILY_POSTERS, {field: path}, file_server, unset_missing=False
    )


def backdrop_update(target, document, path, file_server) -> Optional[UpdateIntent]:
    return asset_update(
        target, document, FAMILY_BACKDROPS, {"backdrop": path}, file_server, unset_missing=False
    )


# -- video ----------------------------------------------------------------------


def movie_video_file(title: str, entry: Mapping[str, Any]) -> str:
    """Return the movie's ``.mp4`` file name, raising when the asset is missing."""

    file_names = entry.get("fileNames") or []
    mp4_file = next((name for name in file_names if str(name).lower().endswith(".mp4")), None)
    if mp4_file is None:
        raise MissingAssetError(f"No MP4 file found for movie {title!r}")
    if not (entry.get("urls") or {}).get("mp4"):
        raise MissingAssetError(f"No MP4 video URL found for movie {title!r}")
    return mp4_file


def video_url_update(
    target: Target,
    document: Optional[Mapping[str, Any]],
    path: Optional[str],
    file_server: FileServerConfig,
    media_last_modified: Any = None,
) -> Optional[UpdateIntent]:
    url = file_server.full_url(path)
    if url is None:
        return None
    if file_server.same_asset((document or {}).get("videoURL"), url):
        return None
    set_fields: dict[str, Any] = {"videoURL": url}
    modified = parse_timestamp(media_last_modified)
    if modified is not None:
        set_fields["mediaLastModified"] = modified
    return target.intent(document, FAMILY_VIDEO_URL, set_fields)


def length_dimensions_update(
    target: Target,
    document: Optional[Mapping[str, Any]],
    length: Any,
    dimensions: Any,
) -> Optional[UpdateIntent]:
    document = document or {}
    set_fields: dict[str, Any] = {}
    if length and document.get("length") != length:
        set_fields["length"] = length
    if dimensions and document.get("dimensions") != dimensions:
        set_fields["dimensions"] = dimensions
    return target.intent(document, FAMILY_LENGTH_DIMENSIONS, set_fields)
