"""MongoDB-backed catalog store used by the sync engine and the media endpoints."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from backend.catalog_sync.intents import MOVIE, TV, MediaType, UpdateIntent

from ..schemas import MediaListModel, MediaMetricsModel, MediaSummaryModel
from ..settings import AdminSettings

logger = logging.getLogger(__name__)

SYNC_INFO_ID = "lastSyncTime"

_SUMMARY_PROJECTION = {
    "_id": 0,
    "title": 1,
    "posterURL": 1,
    "videoURL": 1,
    "captionURLs": 1,
    "metadata.last_updated": 1,
    "seasons.seasonNumber": 1,
    "seasons.episodes.episodeNumber": 1,
    "seasons.episodes.videoURL": 1,
}


def translate_intent(intent: UpdateIntent) -> tuple[dict[str, Any], list[dict[str, Any]] | None]:
    """Turn an intent into a MongoDB update document and optional array filters."""

    if intent.level == "episode":
        prefix = "seasons.$[season].episodes.$[episode]."
        array_filters = [
            {"season.seasonNumber": intent.season_number},
            {"episode.episodeNumber": intent.episode_number},
        ]
    elif intent.level == "season":
        prefix = "seasons.$[season]."
        array_filters = [{"season.seasonNumber": intent.season_number}]
    else:
        prefix = ""
        array_filters = None

    update: dict[str, Any] = {}
    if intent.set:
        update["$set"] = {f"{prefix}{path}": value for path, value in intent.set.items()}
    if intent.unset:
        update["$unset"] = {f"{prefix}{path}": "" for path in sorted(intent.unset)}
    return update, array_filters


def summarize(document: Mapping[str, Any], media_type: MediaType) -> MediaSummaryModel:
    seasons = document.get("seasons") or []
    metadata = document.get("metadata") or {}
    last_updated = metadata.get("last_updated")
    return MediaSummaryModel(
        title=document.get("title", ""),
        media_type=media_type,
        poster_url=document.get("posterURL"),
        video_url=document.get("videoURL") if media_type == MOVIE else None,
        season_count=len(seasons),
        episode_count=sum(len(season.get("episodes") or []) for season in seasons),
        metadata_updated=str(last_updated) if last_updated is not None else None,
    )


def compute_metrics(
    movies: Iterable[Mapping[str, Any]],
    shows: Iterable[Mapping[str, Any]],
    last_sync_time: datetime | None = None,
) -> MediaMetricsModel:
    metrics = MediaMetricsModel(last_sync_time=last_sync_time)
    for movie in movies:
        metrics.movies += 1
        if not movie.get("videoURL"):
            metrics.movies_without_video += 1
        if not movie.get("captionURLs"):
            metrics.movies_without_captions += 1
    for show in shows:
        metrics.shows += 1
        for season in show.get("seasons") or []:
            metrics.seasons += 1
            for episode in season.get("episodes") or []:
                metrics.episodes += 1
                if not episode.get("videoURL"):
                    metrics.episodes_without_video += 1
    return metrics


class CatalogStore:
    """Reads the catalog snapshot and applies sync intents with pymongo."""

    def __init__(
        self,
        client: MongoClient,
        *,
        media_database: str = "Media",
        config_database: str = "app_config",
    ) -> None:
        self._client = client
        media = client[media_database]
        self._collections: dict[str, Collection] = {MOVIE: media["Movies"], TV: media["TV"]}
        self._update_logs: dict[str, Collection] = {
            MOVIE: media["MediaUpdatesMovie"],
            TV: media["MediaUpdatesTV"],
        }
        self._sync_info: Collection = client[config_database]["syncInfo"]

    @classmethod
    def from_settings(cls, settings: AdminSettings) -> "CatalogStore":
        # MongoClient connects lazily, on the first operation.
        return cls(
            MongoClient(
                settings.mongodb_url,
                tz_aware=True,
                serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            ),
            media_database=settings.media_database,
            config_database=settings.config_database,
        )

    def close(self) -> None:
        self._client.close()

    def ping(self) -> bool:
        try:
            self._client.admin.command("ping")
        except PyMongoError:
            logger.warning("Catalog database is unreachable", exc_info=True)
            return False
        return True

    def collection(self, media_type: MediaType) -> Collection:
        return self._collections[media_type]

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Load every movie and show document."""

        return {
            "movies": list(self._collections[MOVIE].find({}, {"_id": 0})),
            "tv": list(self._collections[TV].find({}, {"_id": 0})),
        }

    def find(self, media_type: MediaType, title: str) -> dict[str, Any] | None:
        return self._collections[media_type].find_one({"title": title}, {"_id": 0})

    def apply(self, intents: Sequence[UpdateIntent]) -> int:
        """Apply intents in order and return the number of write operations issued."""

        writes = 0
        touched: dict[str, set[str]] = {MOVIE: set(), TV: set()}
        for intent in intents:
            update, array_filters = translate_intent(intent)
            if not update:
                continue
            logger.debug("Applying %s", intent.describe())
            self._collections[intent.media_type].update_one(
                {"title": intent.title},
                update,
                upsert=intent.upsert,
                array_filters=array_filters,
            )
            writes += 1
            touched[intent.media_type].add(intent.title)

        now = datetime.now(timezone.utc)
        for media_type, titles in touched.items():
            for title in sorted(titles):
                self._update_logs[media_type].update_one(
                    {"title": title}, {"$set": {"lastUpdated": now}}, upsert=True
                )
        return writes

    def last_synced(self) -> datetime | None:
        document = self._sync_info.find_one({"_id": SYNC_INFO_ID})
        return document.get("timestamp") if document else None

    def mark_synced(self, timestamp: datetime) -> None:
        self._sync_info.update_one(
            {"_id": SYNC_INFO_ID}, {"$set": {"timestamp": timestamp}}, upsert=True
        )

    def list_media(
        self,
        *,
        media_type: MediaType,
        query: str | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> MediaListModel:
        """Return one page of catalog summaries ordered by title."""

        collection = self._collections[media_type]
        filters: dict[str, Any] = {}
        if query:
            filters["title"] = {"$regex": re.escape(query), "$options": "i"}
        total = collection.count_documents(filters)
        cursor = (
            collection.find(filters, _SUMMARY_PROJECTION)
            .sort("title", ASCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return MediaListModel(
            items=[summarize(document, media_type) for document in cursor],
            total=total,
            page=page,
            page_size=page_size,
        )

    def metrics(self) -> MediaMetricsModel:
        return compute_metrics(
            self._collections[MOVIE].find({}, _SUMMARY_PROJECTION),
            self._collections[TV].find({}, _SUMMARY_PROJECTION),
            self.last_synced(),
        )
