"""Tests for sync coordination across callers."""
from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import fakeredis
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.admin_api.schemas import ConfigModel  # noqa: E402
from backend.admin_api.services.sync_service import (  # noqa: E402
    SYNC_LOCK_NAME,
    SyncInProgressError,
    SyncService,
    UnknownRoutineError,
)
from backend.admin_api.settings import AdminSettings  # noqa: E402

from conftest import BASE_URL, PREFIX, InMemoryCatalog  # noqa: E402

CONFIG = ConfigModel(fileserver_url=BASE_URL, fileserver_prefix_path=PREFIX)


class BlockingCatalog(InMemoryCatalog):
    """Holds the first snapshot until released so a second caller can arrive."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.snapshots = 0

    def snapshot(self):
        self.snapshots += 1
        self.entered.set()
        self.release.wait(timeout=5)
        return super().snapshot()


@pytest.fixture()
def connection() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis()


def make_service(connection, file_server, **overrides) -> SyncService:
    settings = AdminSettings(redis_url="fakeredis://", **overrides)
    return SyncService(settings, connection, transport=file_server.transport)


def test_concurrent_full_sync_callers_share_one_run(connection, file_server) -> None:
    service = make_service(connection, file_server)
    catalog = BlockingCatalog()
    reports: list = []

    first = threading.Thread(target=lambda: reports.append(service.run_full_sync(catalog, CONFIG)))
    first.start()
    assert catalog.entered.wait(timeout=5)
    assert service.running

    second = threading.Thread(target=lambda: reports.append(service.run_full_sync(catalog, CONFIG)))
    second.start()
    time.sleep(0.2)
    catalog.release.set()
    first.join(timeout=10)
    second.join(timeout=10)

    assert len(reports) == 2
    assert reports[0] is reports[1]
    assert catalog.snapshots == 2
    assert file_server.requests.count("/media/media_list.json") == 1
    assert not service.running


def test_failed_sync_propagates_to_caller_and_resets(connection, file_server) -> None:
    service = make_service(connection, file_server)
    file_server.listing_status = 500

    with pytest.raises(Exception, match="HTTP 500"):
        service.run_full_sync(InMemoryCatalog(), CONFIG)
    assert not service.running

    file_server.listing_status = 200
    report = service.run_full_sync(InMemoryCatalog(), CONFIG)
    assert report.writes > 0


def test_sync_waits_for_lock_held_by_another_process(connection, file_server) -> None:
    service = make_service(connection, file_server, sync_lock_timeout=1)
    other = connection.lock(SYNC_LOCK_NAME, timeout=30)
    assert other.acquire(blocking=False)

    with pytest.raises(SyncInProgressError):
        service.run_full_sync(InMemoryCatalog(), CONFIG)

    other.release()
    assert service.run_full_sync(InMemoryCatalog(), CONFIG).writes > 0


def test_run_routine_accepts_hyphenated_names(connection, file_server) -> None:
    service = make_service(connection, file_server)
    catalog = InMemoryCatalog(movies=[{"title": "Alpha"}])

    results = service.run_routine(catalog, CONFIG, "video-url")

    assert results.family == "video_url"
    assert catalog.movie("Alpha")["videoURL"] == "http://fs.test/media/movies/Alpha/Alpha.mp4"


def test_run_routine_rejects_unknown_names(connection, file_server) -> None:
    service = make_service(connection, file_server)

    with pytest.raises(UnknownRoutineError):
        service.run_routine(InMemoryCatalog(), CONFIG, "everything")
