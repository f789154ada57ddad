"""Helpers for recognising episode files by name."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

# Ordered: the first pattern that matches wins.
_SEASON_EPISODE = re.compile(
    r"S(\d+)E(\d+)(?:\s*-\s*(.+?))?(?:\s*-\s*.+?)?\.([^.]+)$", re.IGNORECASE
)
_EPISODE_ONLY = re.compile(r"^(\d+)(?:\s*-\s*(.+?))?\.([^.]+)$", re.IGNORECASE)
_SHOW_SEASON_EPISODE = re.compile(
    r"(.+?)\s*-\s*S(\d+)E(\d+)(?:\s*-\s*(.+?))?(?:\s*-\s*.+?)?\.([^.]+)$", re.IGNORECASE
)
_RELEASE_TAGS = re.compile(r"(WEBRip|WEBDL|HDTV|Bluray|\d{3,4}p).*$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class EpisodeDetails:
    """Season/episode numbers and title parsed from an episode file name."""

    season_number: int | None
    episode_number: int
    title: str
    extension: str


def clean_episode_title(title: str | None) -> str:
    """Drop release tags such as ``WEBRip`` or ``1080p`` and anything after them."""

    if not title:
        return ""
    return _RELEASE_TAGS.sub("", title).strip()


def match_episode_file_name(file_name: str) -> EpisodeDetails | None:
    """Parse an episode file name, returning ``None`` when no pattern applies."""

    match = _SEASON_EPISODE.search(file_name)
    if match:
        return EpisodeDetails(
            season_number=int(match.group(1)),
            episode_number=int(match.group(2)),
            title=clean_episode_title(match.group(3)),
            extension=match.group(4),
        )

    match = _EPISODE_ONLY.search(file_name)
    if match:
        return EpisodeDetails(
            season_number=None,
            episode_number=int(match.group(1)),
            title=clean_episode_title(match.group(2)),
            extension=match.group(3),
        )

    match = _SHOW_SEASON_EPISODE.search(file_name)
    if match:
        return EpisodeDetails(
            season_number=int(match.group(2)),
            episode_number=int(match.group(3)),
            title=clean_episode_title(match.group(4)),
            extension=match.group(5),
        )

    return None


def find_episode_file_name(
    file_names: Iterable[str], season_number: int, episode_number: int
) -> str | None:
    """Return the first file name that belongs to the given episode."""

    pattern = re.compile(
        rf"(S?{season_number:02d}E{episode_number:02d})|^{episode_number:02d}\s?-",
        re.IGNORECASE,
    )
    for file_name in file_names:
        stem = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
        if pattern.search(stem):
            return file_name
    return None


def episode_key(season_number: int, episode_number: int) -> str:
    return f"S{season_number:02d}E{episode_number:02d}"
