"""Shared fixtures: an in-memory catalog and a fake file server."""
from __future__ import annotations

import copy
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Sequence

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.admin_api.schemas import MediaListModel, MediaMetricsModel  # noqa: E402
from backend.admin_api.stores.catalog_store import compute_metrics, summarize  # noqa: E402
from backend.catalog_sync import (  # noqa: E402
    FileServerClient,
    FileServerConfig,
    MetadataFetcher,
    SyncOrchestrator,
    UpdateIntent,
)
from backend.catalog_sync.intents import MOVIE, TV  # noqa: E402

BASE_URL = "http://fs.test"
PREFIX = "media"
ROOT = f"{BASE_URL}/{PREFIX}"


def _walk(container: dict[str, Any], path: str, create: bool) -> tuple[dict[str, Any] | None, str]:
    *parents, leaf = path.split(".")
    node: Any = container
    for part in parents:
        if not isinstance(node, dict):
            return None, leaf
        if part not in node:
            if not create:
                return None, leaf
            node[part] = {}
        node = node[part]
    return (node if isinstance(node, dict) else None), leaf


class InMemoryCatalog:
    """Dict-backed catalog that applies intents the way the Mongo store does."""

    def __init__(self, movies: Iterable[dict[str, Any]] = (), shows: Iterable[dict[str, Any]] = ()) -> None:
        self.documents: dict[str, dict[str, dict[str, Any]]] = {
            MOVIE: {doc["title"]: copy.deepcopy(doc) for doc in movies},
            TV: {doc["title"]: copy.deepcopy(doc) for doc in shows},
        }
        self.applied: list[UpdateIntent] = []
        self.last_sync_time: datetime | None = None

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "movies": copy.deepcopy(list(self.documents[MOVIE].values())),
            "tv": copy.deepcopy(list(self.documents[TV].values())),
        }

    def movie(self, title: str) -> dict[str, Any]:
        return self.documents[MOVIE][title]

    def show(self, title: str) -> dict[str, Any]:
        return self.documents[TV][title]

    def episode(self, title: str, season_number: int, episode_number: int) -> dict[str, Any]:
        season = next(s for s in self.show(title)["seasons"] if s["seasonNumber"] == season_number)
        return next(e for e in season["episodes"] if e["episodeNumber"] == episode_number)

    def _element(self, intent: UpdateIntent) -> dict[str, Any] | None:
        documents = self.documents[intent.media_type]
        document = documents.get(intent.title)
        if document is None:
            if not intent.upsert:
                return None
            document = documents[intent.title] = {"title": intent.title}
        if intent.season_number is None:
            return document
        season = next(
            (s for s in document.get("seasons") or [] if s.get("seasonNumber") == intent.season_number),
            None,
        )
        if season is None or intent.episode_number is None:
            return season
        return next(
            (e for e in season.get("episodes") or [] if e.get("episodeNumber") == intent.episode_number),
            None,
        )

    def apply(self, intents: Sequence[UpdateIntent]) -> int:
        writes = 0
        for intent in intents:
            self.applied.append(intent)
            writes += 1
            element = self._element(intent)
            if element is None:
                continue
            for path, value in intent.set.items():
                parent, leaf = _walk(element, path, create=True)
                if parent is not None:
                    parent[leaf] = copy.deepcopy(value)
            for path in intent.unset:
                parent, leaf = _walk(element, path, create=False)
                if parent is not None:
                    parent.pop(leaf, None)
        return writes

    def mark_synced(self, timestamp: datetime) -> None:
        self.last_sync_time = timestamp

    def last_synced(self) -> datetime | None:
        return self.last_sync_time

    def ping(self) -> bool:
        return True

    def list_media(self, *, media_type: str, query: str | None = None, page: int = 1, page_size: int = 25) -> MediaListModel:
        documents = sorted(self.documents[media_type].values(), key=lambda doc: doc["title"])
        if query:
            documents = [doc for doc in documents if query.lower() in doc["title"].lower()]
        start = (page - 1) * page_size
        return MediaListModel(
            items=[summarize(doc, media_type) for doc in documents[start:start + page_size]],
            total=len(documents),
            page=page,
            page_size=page_size,
        )

    def metrics(self) -> MediaMetricsModel:
        return compute_metrics(
            self.documents[MOVIE].values(), self.documents[TV].values(), self.last_sync_time
        )


def subtitle(src_lang: str, path: str, last_modified: str = "2024-03-01T12:00:00Z") -> dict[str, Any]:
    return {"srcLang": src_lang, "url": path, "lastModified": last_modified}


def sample_listing() -> dict[str, Any]:
    """A listing with one complete movie, one movie without video and one show."""

    pilot = "S01E01 - Pilot.mp4"
    second = "S01E02 - Second.mp4"
    return {
        "movies": {
            "Alpha": {
                "fileNames": ["Alpha.mp4", "Alpha.en.srt"],
                "length": {"Alpha.mp4": 5400000},
                "dimensions": {"Alpha.mp4": "1920x1080"},
                "urls": {
                    "mp4": "/media/movies/Alpha/Alpha.mp4",
                    "mediaLastModified": "2024-03-01T12:00:00Z",
                    "metadata": "/media/movies/Alpha/metadata.json",
                    "poster": "/media/movies/Alpha/poster.jpg",
                    "posterBlurhash": "/media/movies/Alpha/poster.blurhash",
                    "logo": "/media/movies/Alpha/logo.png",
                    "backdrop": "/media/movies/Alpha/backdrop.jpg",
                    "backdropBlurhash": "/media/movies/Alpha/backdrop.blurhash",
                    "chapters": "/media/movies/Alpha/chapters.vtt",
                    "subtitles": {
                        "Spanish": subtitle("es", "/media/movies/Alpha/Alpha.es.srt"),
                        "English": subtitle("en", "/media/movies/Alpha/Alpha.en.srt"),
                    },
                },
            },
            "Ghost": {"fileNames": ["Ghost.srt"], "urls": {}},
        },
        "tv": {
            "Show": {
                "metadata": "/media/tv/Show/metadata.json",
                "poster": "/media/tv/Show/show_poster.jpg",
                "posterBlurhash": "/media/tv/Show/show_poster.blurhash",
                "logo": "/media/tv/Show/logo.png",
                "backdrop": "/media/tv/Show/backdrop.jpg",
                "backdropBlurhash": "/media/tv/Show/backdrop.blurhash",
                "seasons": {
                    "Season 1": {
                        "fileNames": [pilot, second],
                        "season_poster": "/media/tv/Show/Season1/season_poster.jpg",
                        "seasonPosterBlurhash": "/media/tv/Show/Season1/season_poster.blurhash",
                        "lengths": {pilot: 1500000, second: 1600000},
                        "dimensions": {pilot: "1920x1080", second: "1920x1080"},
                        "urls": {
                            pilot: {
                                "videourl": "/media/tv/Show/Season1/S01E01.mp4",
                                "mediaLastModified": "2024-03-01T12:00:00Z",
                                "metadata": "/media/tv/Show/Season1/S01E01.json",
                                "thumbnail": "/media/tv/Show/Season1/S01E01.jpg",
                                "thumbnailBlurhash": "/media/tv/Show/Season1/S01E01.blurhash",
                                "chapters": "/media/tv/Show/Season1/S01E01.vtt",
                                "subtitles": {
                                    "English": subtitle("en", "/media/tv/Show/Season1/S01E01.en.srt"),
                                },
                            },
                            second: {
                                "videourl": "/media/tv/Show/Season1/S01E02.mp4",
                                "mediaLastModified": "2024-03-01T12:00:00Z",
                                "metadata": "/media/tv/Show/Season1/S01E02.json",
                            },
                        },
                    },
                    "Season 2": {"fileNames": [], "urls": {}},
                },
            },
        },
    }


def sample_metadata() -> dict[str, dict[str, Any]]:
    """Metadata documents keyed by the request path the file server serves them on."""

    return {
        "/media/movies/Alpha/metadata.json": {
            "title": "Alpha",
            "release_date": "2024-02-01",
            "last_updated": "2024-03-01T00:00:00Z",
        },
        "/media/tv/Show/metadata.json": {
            "name": "Show",
            "last_updated": "2024-03-01T00:00:00Z",
            "seasons": [{"season_number": 1, "name": "Season 1", "last_updated": "2024-03-01T00:00:00Z"}],
        },
        "/media/tv/Show/Season1/S01E01.json": {"name": "Pilot", "last_updated": "2024-03-01T00:00:00Z"},
        "/media/tv/Show/Season1/S01E02.json": {"name": "Second", "last_updated": "2024-03-01T00:00:00Z"},
    }


class FakeFileServer:
    """Serves a listing and metadata documents through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.listing: Any = sample_listing()
        self.metadata = sample_metadata()
        self.listing_status = 200
        self.requests: list[str] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if path == f"/{PREFIX}/media_list.json":
            if self.listing_status != 200:
                return httpx.Response(self.listing_status)
            return httpx.Response(200, json=self.listing)
        if path in self.metadata:
            return httpx.Response(200, json=self.metadata[path])
        return httpx.Response(404)

    @property
    def config(self) -> FileServerConfig:
        return FileServerConfig(base_url=BASE_URL, prefix_path=PREFIX)

    def client(self) -> FileServerClient:
        return FileServerClient(self.config, transport=self.transport)

    def fetcher(self) -> MetadataFetcher:
        return MetadataFetcher(self.config, transport=self.transport)


@pytest.fixture()
def file_server() -> FakeFileServer:
    return FakeFileServer()


@pytest.fixture()
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture()
def make_orchestrator(file_server: FakeFileServer):
    """Build an orchestrator over the fake file server; a fresh fetcher each call."""

    def factory(target_catalog: InMemoryCatalog) -> SyncOrchestrator:
        return SyncOrchestrator(target_catalog, file_server.client(), file_server.fetcher())

    return factory
