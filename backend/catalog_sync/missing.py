"""Work out which listing entries the catalog does not hold yet."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .episodes import match_episode_file_name
from .listing import Listing, require_list, require_mapping, season_number

Snapshot = dict[str, list[dict[str, Any]]]


@dataclass(slots=True)
class MissingShow:
    show_title: str
    seasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"showTitle": self.show_title, "seasons": list(self.seasons)}


@dataclass(slots=True)
class MissingReport:
    """Media to add (``missing_media``) and titles lacking a video file (``missing_mp4``)."""

    missing_movies: list[str] = field(default_factory=list)
    missing_shows: list[MissingShow] = field(default_factory=list)
    missing_mp4_movies: list[str] = field(default_factory=list)
    missing_mp4_tv: list[str] = field(default_factory=list)

    @property
    def missing_media(self) -> dict[str, Any]:
        return {
            "movies": list(self.missing_movies),
            "tv": [show.to_dict() for show in self.missing_shows],
        }

    @property
    def missing_mp4(self) -> dict[str, Any]:
        return {"movies": list(self.missing_mp4_movies), "tv": list(self.missing_mp4_tv)}


def _season_files(show_title: str, label: str, season: Any) -> list[Any]:
    season = require_mapping(season, f"tv[{show_title!r}].seasons[{label!r}]")
    return require_list(season.get("fileNames"), f"tv[{show_title!r}].seasons[{label!r}].fileNames")


def _episode_numbers(file_names: list[Any]) -> set[int]:
    numbers = set()
    for name in file_names:
        details = match_episode_file_name(str(name))
        if details is not None:
            numbers.add(details.episode_number)
    return numbers


def identify_missing_media(listing: Listing, snapshot: Mapping[str, Any]) -> MissingReport:
    report = MissingReport()
    movies_by_title = {doc.get("title"): doc for doc in snapshot.get("movies", [])}
    shows_by_title = {doc.get("title"): doc for doc in snapshot.get("tv", [])}

    for show_title, show_entry in listing.get("tv", {}).items():
        seasons = require_mapping(
            require_mapping(show_entry, f"tv[{show_title!r}]").get("seasons"),
            f"tv[{show_title!r}].seasons",
        )
        stored_show = shows_by_title.get(show_title)

        if stored_show is None:
            labels = [label for label, season in seasons.items() if _season_files(show_title, label, season)]
            if labels:
                report.missing_shows.append(MissingShow(show_title, labels))
            else:
                report.missing_mp4_tv.append(show_title)
            continue

        stored_seasons = {
            season.get("seasonNumber"): season for season in stored_show.get("seasons") or []
        }
        missing = MissingShow(show_title)
        for label, season in seasons.items():
            files = _season_files(show_title, label, season)
            stored_season = stored_seasons.get(season_number(label))
            if stored_season is None:
                if files:
                    missing.seasons.append(label)
                continue
            if not files:
                report.missing_mp4_tv.append(f"{show_title} - {label}")
                continue
            stored_episodes = {
                episode.get("episodeNumber") for episode in stored_season.get("episodes") or []
            }
            if _episode_numbers(files) - stored_episodes:
                missing.seasons.append(label)
        if missing.seasons:
            report.missing_shows.append(missing)

    for movie_title, movie_entry in listing.get("movies", {}).items():
        if movie_title in movies_by_title:
            continue
        urls = require_mapping(
            require_mapping(movie_entry, f"movies[{movie_title!r}]").get("urls"),
            f"movies[{movie_title!r}].urls",
        )
        if urls.get("mp4"):
            report.missing_movies.append(movie_title)
        else:
            report.missing_mp4_movies.append(movie_title)

    return report
