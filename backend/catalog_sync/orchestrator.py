"""
Sync orchestration: walk the catalog and the file server listing, collect the
intents each field family produces and hand them to the catalog in one batch.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Mapping, Optional, Protocol, Sequence

from . import reconciler
from .captions import process_caption_urls
from .episodes import find_episode_file_name
from .errors import MetadataUnavailableError, MissingAssetError
from .intents import MOVIE, TV, UpdateIntent
from .listing import FileServerClient, Listing, require_mapping, season_label
from .merger import add_or_update_season
from .metadata_fetcher import MetadataFetcher
from .missing import MissingReport, Snapshot, identify_missing_media
from .reconciler import Target
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    """Persistence operations the orchestrator relies on."""

    def snapshot(self) -> Snapshot: ...

    def apply(self, intents: Sequence[UpdateIntent]) -> int: ...

    def mark_synced(self, timestamp: datetime) -> None: ...


@dataclass(slots=True)
class SyncResults:
    family: str
    processed: dict[str, list[str]] = field(default_factory=lambda: {"movies": [], "tv": []})
    errors: dict[str, list[dict[str, str]]] = field(default_factory=lambda: {"movies": [], "tv": []})
    writes: int = 0

    def record_error(self, kind: str, title: str, exc: Exception) -> None:
        self.errors[kind].append({"title": title, "error": str(exc)})

    def to_dict(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "processed": {key: list(value) for key, value in self.processed.items()},
            "errors": {key: list(value) for key, value in self.errors.items()},
            "writes": self.writes,
        }


@dataclass(slots=True)
class SyncReport:
    start_time: datetime
    duration: float
    missing_media: dict[str, Any]
    missing_mp4: dict[str, Any]
    results: list[SyncResults] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return sum(result.writes for result in self.results)


@dataclass(slots=True)
class EpisodeContext:
    """A stored episode paired with the file server entry it was found under."""

    show: Mapping[str, Any]
    season: Mapping[str, Any]
    season_entry: Mapping[str, Any]
    episode: Mapping[str, Any]
    file_name: str
    entry: Mapping[str, Any]

    @property
    def target(self) -> Target:
        return Target(TV, self.show["title"], self.season["seasonNumber"], self.episode["episodeNumber"])


class SyncOrchestrator:
    """Runs the individual sync routines and the full sync pass."""

    ROUTINES = (
        "missing_media",
        "metadata",
        "captions",
        "chapters",
        "video_url",
        "logos",
        "blurhash",
        "length_and_dimensions",
        "episode_thumbnails",
        "poster_urls",
        "backdrops",
    )

    def __init__(
        self,
        catalog: Catalog,
        file_server_client: FileServerClient,
        fetcher: MetadataFetcher,
    ) -> None:
        self.catalog = catalog
        self.client = file_server_client
        self.file_server = file_server_client.config
        self.fetcher = fetcher

    # -- plumbing ---------------------------------------------------------------

    def _inputs(
        self, listing: Optional[Listing], snapshot: Optional[Snapshot]
    ) -> tuple[Listing, Snapshot]:
        if listing is None:
            listing = self.client.fetch_listing()
        if snapshot is None:
            snapshot = self.catalog.snapshot()
        return listing, snapshot

    def _paired(
        self, snapshot: Snapshot, listing: Listing, kind: str
    ) -> Iterator[tuple[Mapping[str, Any], Mapping[str, Any]]]:
        entries = listing.get(kind, {})
        for document in snapshot.get(kind, []):
            entry = entries.get(document.get("title"))
            if entry is not None:
                yield document, require_mapping(entry, f"{kind}[{document.get('title')!r}]")

    def _seasons(
        self, show: Mapping[str, Any], show_entry: Mapping[str, Any]
    ) -> Iterator[tuple[Mapping[str, Any], Mapping[str, Any]]]:
        season_entries = require_mapping(show_entry.get("seasons"), f"tv[{show['title']!r}].seasons")
        for season in show.get("seasons") or []:
            label = season_label(season["seasonNumber"])
            season_entry = season_entries.get(label)
            if season_entry is None:
                logger.debug("TV: %s %s not on the file server", show["title"], label)
                continue
            yield season, require_mapping(season_entry, f"{show['title']} {label}")

    def _episodes(
        self, show: Mapping[str, Any], show_entry: Mapping[str, Any]
    ) -> Iterator[EpisodeContext]:
        for season, season_entry in self._seasons(show, show_entry):
            urls = require_mapping(season_entry.get("urls"), f"{show['title']} season urls")
            file_names = list(season_entry.get("fileNames") or urls.keys())
            for episode in season.get("episodes") or []:
                file_name = find_episode_file_name(
                    file_names, season["seasonNumber"], episode["episodeNumber"]
                )
                if file_name is None:
                    continue
                yield EpisodeContext(
                    show=show,
                    season=season,
                    season_entry=season_entry,
                    episode=episode,
                    file_name=file_name,
                    entry=require_mapping(urls.get(file_name), f"{show['title']} urls[{file_name!r}]"),
                )

    def _commit(self, results: SyncResults, intents: list[UpdateIntent]) -> SyncResults:
        for intent in intents:
            kind = "movies" if intent.media_type == MOVIE else "tv"
            if intent.title not in results.processed[kind]:
                results.processed[kind].append(intent.title)
        results.writes = self.catalog.apply(intents) if intents else 0
        logger.info(
            "Sync %s: %d writes, %d movies and %d shows updated, %d errors",
            results.family,
            results.writes,
            len(results.processed["movies"]),
            len(results.processed["tv"]),
            len(results.errors["movies"]) + len(results.errors["tv"]),
        )
        return results

    def _guarded(
        self,
        results: SyncResults,
        kind: str,
        title: str,
        intents: list[UpdateIntent],
        compute: Callable[[], Any],
    ) -> None:
        """Collect the intents ``compute`` returns, recording per-entity skips."""

        try:
            produced = compute()
        except (MissingAssetError, MetadataUnavailableError) as exc:
            logger.warning("%s: skipping %r: %s", results.family, title, exc)
            results.record_error(kind, title, exc)
            return
        if produced is None:
            return
        if isinstance(produced, UpdateIntent):
            produced = [produced]
        intents.extend(intent for intent in produced if intent is not None)

    def _fetch_required(self, url: Optional[str], media_type: str, title: str) -> dict[str, Any]:
        metadata = self.fetcher.fetch(url, media_type=media_type, title=title)
        if metadata is None:
            raise MetadataUnavailableError(f"No metadata found for {media_type} {title!r}")
        return metadata

    # -- routines -----------------------------------------------------------------

    def sync_missing_media(
        self,
        listing: Optional[Listing] = None,
        snapshot: Optional[Snapshot] = None,
        report: Optional[MissingReport] = None,
    ) -> SyncResults:
        listing, snapshot = self._inputs(listing, snapshot)
        if report is None:
            report = identify_missing_media(listing, snapshot)
        results = SyncResults(reconciler.FAMILY_MISSING)
        intents: list[UpdateIntent] = []

        for title in report.missing_movies:
            self._guarded(
                results, "movies", title, intents,
                lambda title=title: self._new_movie(title, listing["movies"][title]),
            )
        for title in report.missing_mp4_movies:
            results.record_error("movies", title, MissingAssetError(f"No MP4 video URL for movie {title!r}"))

        shows_by_title = {show.get("title"): show for show in snapshot.get("tv", [])}
        for missing in report.missing_shows:
            self._guarded(
                results, "tv", missing.show_title, intents,
                lambda missing=missing: self._new_or_extended_show(
                    missing.show_title,
                    missing.seasons,
                    listing["tv"][missing.show_title],
                    shows_by_title.get(missing.show_title),
                ),
            )
        return self._commit(results, intents)

    def _new_movie(self, title: str, entry: Mapping[str, Any]) -> Optional[UpdateIntent]:
        mp4_file = reconciler.movie_video_file(title, entry)
        urls = require_mapping(entry.get("urls"), f"movies[{title!r}].urls")
        metadata = self._fetch_required(urls.get("metadata"), "movie", title)

        full_url = self.file_server.full_url
        document: dict[str, Any] = {
            "title": title,
            "videoURL": full_url(urls["mp4"]),
            "mediaLastModified": parse_timestamp(urls.get("mediaLastModified")),
            "length": require_mapping(entry.get("length"), "length").get(mp4_file),
            "dimensions": require_mapping(entry.get("dimensions"), "dimensions").get(mp4_file),
            "metadata": reconciler.normalize_movie_metadata(metadata),
        }
        for source, stored in (
            ("poster", "posterURL"),
            ("posterBlurhash", "posterBlurhash"),
            ("logo", "logo"),
            ("chapters", "chapterURL"),
            ("backdrop", "backdrop"),
            ("backdropBlurhash", "backdropBlurhash"),
        ):
            if urls.get(source):
                document[stored] = full_url(urls[source])
        captions = process_caption_urls(urls.get("subtitles"), self.file_server)
        if captions:
            document["captionURLs"] = captions

        document = {key: value for key, value in document.items() if value is not None}
        logger.info("Movie: adding %r", title)
        return Target(MOVIE, title).intent(None, reconciler.FAMILY_MISSING, document, upsert=True)

    def _new_or_extended_show(
        self,
        title: str,
        labels: list[str],
        entry: Mapping[str, Any],
        stored: Optional[Mapping[str, Any]],
    ) -> Optional[UpdateIntent]:
        entry = require_mapping(entry, f"tv[{title!r}]")
        show_metadata = self._fetch_required(entry.get("metadata"), "tv", title)

        seasons: list[Any] = list((stored or {}).get("seasons") or [])
        for label in labels:
            seasons = add_or_update_season(
                seasons, label, entry, show_metadata, self.file_server, self.fetcher, title
            )

        full_url = self.file_server.full_url
        document: dict[str, Any] = {
            "title": title,
            "metadata": dict(show_metadata),
            "seasons": seasons,
            "posterURL": full_url(entry.get("poster")),
            "posterBlurhash": full_url(entry.get("posterBlurhash")),
            "backdrop": full_url(entry.get("backdrop")),
            "backdropBlurhash": full_url(entry.get("backdropBlurhash")),
            "logo": full_url(entry.get("logo")),
        }
        document = {key: value for key, value in document.items() if value is not None}
        if stored is not None:
            # Fields already curated on an existing show are left to their own routines.
            document = {key: value for key, value in document.items() if key == "seasons" or key not in stored}
        logger.info("TV: %s %r (%s)", "extending" if stored else "adding", title, ", ".join(labels))
        return Target(TV, title).intent(stored, reconciler.FAMILY_MISSING, document, upsert=True)

    def sync_metadata(
        self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None
    ) -> SyncResults:
        listing, snapshot = self._inputs(listing, snapshot)
        results = SyncResults(reconciler.FAMILY_METADATA)
        intents: list[UpdateIntent] = []

        for movie, entry in self._paired(snapshot, listing, "movies"):
            def movie_metadata(movie=movie, entry=entry):
                urls = require_mapping(entry.get("urls"), "urls")
                if not urls.get("metadata"):
                    return None
                metadata = self._fetch_required(urls["metadata"], "movie", movie["title"])
                return reconciler.metadata_update(
                    Target(MOVIE, movie["title"]), movie, reconciler.normalize_movie_metadata(metadata)
                )

            self._guarded(results, "movies", movie["title"], intents, movie_metadata)

        for show, entry in self._paired(snapshot, listing, "tv"):
            self._guarded(
                results, "tv", show["title"], intents,
                lambda show=show, entry=entry: self._show_metadata(show, entry, results),
            )
        return self._commit(results, intents)

    def _show_metadata(
        self, show: Mapping[str, Any], entry: Mapping[str, Any], results: SyncResults
    ) -> list[Optional[UpdateIntent]]:
        if not entry.get("metadata"):
            return []
        title = show["title"]
        show_target = Target(TV, title)
        show_metadata = self._fetch_required(entry["metadata"], "tv", title)
        intents = [reconciler.metadata_update(show_target, show, show_metadata)]

        for season, _season_entry in self._seasons(show, entry):
            season_metadata = reconciler.season_metadata_from_show(show_metadata, season["seasonNumber"])
            intents.append(
                reconciler.metadata_update(show_target.season(season["seasonNumber"]), season, season_metadata)
            )

        for context in self._episodes(show, entry):
            url = context.entry.get("metadata")
            if not url:
                continue
            metadata = self.fetcher.fetch(url, media_type="tv", title=title)
            if metadata is None:
                label = f"{title} {context.target.season_number}x{context.target.episode_number}"
                results.record_error("tv", label, MetadataUnavailableError("episode metadata unavailable"))
                continue
            intents.append(reconciler.metadata_update(context.target, context.episode, metadata))
        return intents

    def _movie_and_episode_routine(
        self,
        family: str,
        listing: Optional[Listing],
        snapshot: Optional[Snapshot],
        movie_intent: Optional[Callable[[Target, Mapping[str, Any], Mapping[str, Any]], Any]],
        show_intents: Optional[Callable[[Mapping[str, Any], Mapping[str, Any]], Any]],
    ) -> SyncResults:
        listing, snapshot = self._inputs(listing, snapshot)
        results = SyncResults(family)
        intents: list[UpdateIntent] = []
        if movie_intent is not None:
            for movie, entry in self._paired(snapshot, listing, "movies"):
                self._guarded(
                    results, "movies", movie["title"], intents,
                    lambda movie=movie, entry=entry: movie_intent(Target(MOVIE, movie["title"]), movie, entry),
                )
        if show_intents is not None:
            for show, entry in self._paired(snapshot, listing, "tv"):
                self._guarded(
                    results, "tv", show["title"], intents,
                    lambda show=show, entry=entry: show_intents(show, entry),
                )
        return self._commit(results, intents)

    @staticmethod
    def _urls(entry: Mapping[str, Any]) -> Mapping[str, Any]:
        return require_mapping(entry.get("urls"), "urls")

    def sync_captions(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server
        return self._movie_and_episode_routine(
            reconciler.FAMILY_CAPTIONS,
            listing,
            snapshot,
            lambda target, movie, entry: reconciler.captions_update(
                target, movie, self._urls(entry).get("subtitles"), fs
            ),
            lambda show, entry: [
                reconciler.captions_update(ctx.target, ctx.episode, ctx.entry.get("subtitles"), fs)
                for ctx in self._episodes(show, entry)
            ],
        )

    def sync_chapters(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server
        return self._movie_and_episode_routine(
            reconciler.FAMILY_CHAPTERS,
            listing,
            snapshot,
            lambda target, movie, entry: reconciler.chapters_update(
                target, movie, self._urls(entry).get("chapters"), fs
            ),
            lambda show, entry: [
                reconciler.chapters_update(ctx.target, ctx.episode, ctx.entry.get("chapters"), fs)
                for ctx in self._episodes(show, entry)
            ],
        )

    def sync_video_url(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server

        def movie_video(target: Target, movie: Mapping[str, Any], entry: Mapping[str, Any]):
            reconciler.movie_video_file(target.title, entry)
            urls = self._urls(entry)
            return reconciler.video_url_update(target, movie, urls["mp4"], fs, urls.get("mediaLastModified"))

        return self._movie_and_episode_routine(
            reconciler.FAMILY_VIDEO_URL,
            listing,
            snapshot,
            movie_video,
            lambda show, entry: [
                reconciler.video_url_update(
                    ctx.target, ctx.episode, ctx.entry.get("videourl"), fs, ctx.entry.get("mediaLastModified")
                )
                for ctx in self._episodes(show, entry)
            ],
        )

    def sync_logos(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server
        return self._movie_and_episode_routine(
            reconciler.FAMILY_LOGOS,
            listing,
            snapshot,
            lambda target, movie, entry: reconciler.logo_update(target, movie, self._urls(entry).get("logo"), fs),
            lambda show, entry: reconciler.logo_update(Target(TV, show["title"]), show, entry.get("logo"), fs),
        )

    def sync_blurhash(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server

        def movie_blurhash(target: Target, movie: Mapping[str, Any], entry: Mapping[str, Any]):
            urls = self._urls(entry)
            return reconciler.blurhash_update(
                target,
                movie,
                {"posterBlurhash": urls.get("posterBlurhash"), "backdropBlurhash": urls.get("backdropBlurhash")},
                fs,
            )

        def show_blurhash(show: Mapping[str, Any], entry: Mapping[str, Any]):
            target = Target(TV, show["title"])
            intents = [
                reconciler.blurhash_update(
                    target,
                    show,
                    {"posterBlurhash": entry.get("posterBlurhash"), "backdropBlurhash": entry.get("backdropBlurhash")},
                    fs,
                )
            ]
            for season, season_entry in self._seasons(show, entry):
                intents.append(
                    reconciler.blurhash_update(
                        target.season(season["seasonNumber"]),
                        season,
                        {"seasonPosterBlurhash": season_entry.get("seasonPosterBlurhash")},
                        fs,
                    )
                )
            return intents

        return self._movie_and_episode_routine(
            reconciler.FAMILY_BLURHASH, listing, snapshot, movie_blurhash, show_blurhash
        )

    def sync_length_and_dimensions(
        self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None
    ) -> SyncResults:
        def movie_video_info(target: Target, movie: Mapping[str, Any], entry: Mapping[str, Any]):
            file_names = entry.get("fileNames") or []
            mp4_file = next((name for name in file_names if str(name).lower().endswith(".mp4")), None)
            if mp4_file is None:
                return None
            return reconciler.length_dimensions_update(
                target,
                movie,
                require_mapping(entry.get("length"), "length").get(mp4_file),
                require_mapping(entry.get("dimensions"), "dimensions").get(mp4_file),
            )

        return self._movie_and_episode_routine(
            reconciler.FAMILY_LENGTH_DIMENSIONS,
            listing,
            snapshot,
            movie_video_info,
            lambda show, entry: [
                reconciler.length_dimensions_update(
                    ctx.target,
                    ctx.episode,
                    require_mapping(ctx.season_entry.get("lengths"), "lengths").get(ctx.file_name),
                    require_mapping(ctx.season_entry.get("dimensions"), "dimensions").get(ctx.file_name),
                )
                for ctx in self._episodes(show, entry)
            ],
        )

    def sync_episode_thumbnails(
        self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None
    ) -> SyncResults:
        fs = self.file_server
        return self._movie_and_episode_routine(
            reconciler.FAMILY_THUMBNAILS,
            listing,
            snapshot,
            None,
            lambda show, entry: [
                reconciler.thumbnails_update(ctx.target, ctx.episode, ctx.entry, fs)
                for ctx in self._episodes(show, entry)
            ],
        )

    def sync_poster_urls(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server

        def show_posters(show: Mapping[str, Any], entry: Mapping[str, Any]):
            target = Target(TV, show["title"])
            intents = [reconciler.poster_update(target, show, "posterURL", entry.get("poster"), fs)]
            for season, season_entry in self._seasons(show, entry):
                intents.append(
                    reconciler.poster_update(
                        target.season(season["seasonNumber"]),
                        season,
                        "season_poster",
                        season_entry.get("season_poster"),
                        fs,
                    )
                )
            return intents

        return self._movie_and_episode_routine(
            reconciler.FAMILY_POSTERS,
            listing,
            snapshot,
            lambda target, movie, entry: reconciler.poster_update(
                target, movie, "posterURL", self._urls(entry).get("poster"), fs
            ),
            show_posters,
        )

    def sync_backdrops(self, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None) -> SyncResults:
        fs = self.file_server
        return self._movie_and_episode_routine(
            reconciler.FAMILY_BACKDROPS,
            listing,
            snapshot,
            lambda target, movie, entry: reconciler.backdrop_update(
                target, movie, self._urls(entry).get("backdrop"), fs
            ),
            lambda show, entry: reconciler.backdrop_update(Target(TV, show["title"]), show, entry.get("backdrop"), fs),
        )

    # -- entry points -------------------------------------------------------------

    def run_routine(
        self, name: str, listing: Optional[Listing] = None, snapshot: Optional[Snapshot] = None
    ) -> SyncResults:
        if name not in self.ROUTINES:
            raise KeyError(name)
        return getattr(self, f"sync_{name}")(listing, snapshot)

    def run_full_sync(self) -> SyncReport:
        start_time = datetime.now(timezone.utc)
        started = time.monotonic()
        logger.info("Starting full sync with file server %s", self.file_server.root)

        listing = self.client.fetch_listing()
        snapshot = self.catalog.snapshot()
        report = identify_missing_media(listing, snapshot)
        results = [self.sync_missing_media(listing, snapshot, report)]

        snapshot = self.catalog.snapshot()
        for name in self.ROUTINES[1:]:
            results.append(self.run_routine(name, listing, snapshot))

        self.catalog.mark_synced(datetime.now(timezone.utc))
        duration = time.monotonic() - started
        logger.info(
            "Finished full sync in %.2fs with %d writes",
            duration,
            sum(result.writes for result in results),
        )
        return SyncReport(
            start_time=start_time,
            duration=duration,
            missing_media=report.missing_media,
            missing_mp4=report.missing_mp4,
            results=results,
        )
