"""
Fetch JSON metadata sidecar files published by the file server.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .listing import FileServerConfig

logger = logging.getLogger(__name__)


class MetadataFetcher:
    """Retrieve movie, show, season and episode metadata documents.

    Failures never raise: the caller receives ``None`` and decides to skip the
    entity for the current pass.
    """

    def __init__(
        self,
        file_server: FileServerConfig,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.file_server = file_server
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "MetadataFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def normalize_url(self, url: str) -> Optional[str]:
        normalized = self.file_server.full_url(url)
        if normalized is None:
            return None
        if normalized.count("://") > 1:
            logger.error(
                "Metadata URL is incorrectly normalized, check the file server base URL: %s",
                normalized,
            )
            return None
        return normalized

    def fetch(
        self, url: Optional[str], *, media_type: str = "", title: str = ""
    ) -> Optional[Dict[str, Any]]:
        if not url:
            return None

        normalized = self.normalize_url(url)
        if normalized is None:
            return None
        if normalized in self._cache:
            return self._cache[normalized]

        try:
            response = self._client.get(normalized)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Metadata request for %s %r failed with HTTP %s: %s",
                media_type,
                title,
                exc.response.status_code,
                normalized,
            )
            return None
        except httpx.HTTPError as exc:
            logger.error("Error fetching metadata for %s %r from %s: %s", media_type, title, normalized, exc)
            return None
        except ValueError:
            logger.error("Metadata for %s %r is not valid JSON: %s", media_type, title, normalized)
            return None

        if not isinstance(payload, dict):
            logger.error("Metadata for %s %r must be a JSON object: %s", media_type, title, normalized)
            return None

        self._cache[normalized] = payload
        return payload
