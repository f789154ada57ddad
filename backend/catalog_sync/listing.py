"""File server listing access and URL helpers."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from .errors import FileServerError, MalformedListingError

logger = logging.getLogger(__name__)

Listing = dict[str, dict[str, Any]]

_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_SEASON_LABEL_PATTERN = re.compile(r"^season\s+(\d+)$", re.IGNORECASE)


@dataclass(slots=True)
class FileServerConfig:
    """Location of a file server and the prefix its asset paths live under."""

    base_url: str
    prefix_path: str = ""
    listing_path: str = "media_list.json"

    @property
    def root(self) -> str:
        """Return the base URL joined with the prefix path, without a trailing slash."""

        prefix = self.prefix_path.strip("/")
        base = self.base_url.rstrip("/")
        return f"{base}/{prefix}" if prefix else base

    def strip_prefix(self, url: str | None) -> str:
        """Remove the server root (or a bare prefix path) from the start of a URL."""

        if not url:
            return ""
        for candidate in (self.root, self.base_url.rstrip("/")):
            if url.startswith(candidate + "/") or url == candidate:
                return url[len(candidate):].lstrip("/")
        prefix = self.prefix_path.strip("/")
        stripped = url.lstrip("/")
        if prefix and (stripped == prefix or stripped.startswith(prefix + "/")):
            return stripped[len(prefix):].lstrip("/")
        return stripped if not _SCHEME_PATTERN.match(url) else url

    def full_url(self, path: str | None) -> str | None:
        """Build the absolute URL for an asset path reported by the file server.

        Absolute URLs pointing at another host are returned unchanged.
        """

        if not path:
            return None
        relative = self.strip_prefix(path)
        if _SCHEME_PATTERN.match(relative):
            return relative
        return f"{self.root}/{relative}"

    def same_asset(self, stored: str | None, candidate: str | None) -> bool:
        """Compare two asset URLs after stripping the server root from both."""

        if not stored or not candidate:
            return stored == candidate
        return self.strip_prefix(stored) == self.strip_prefix(candidate)


def season_number(label: str) -> int:
    """Parse a ``"Season N"`` label into its number."""

    match = _SEASON_LABEL_PATTERN.match(str(label).strip())
    if match is None:
        raise MalformedListingError(f"Unrecognised season label: {label!r}")
    return int(match.group(1))


def season_label(number: int) -> str:
    return f"Season {number}"


def require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    """Return ``value`` when it is a mapping, treating ``None`` as empty."""

    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedListingError(f"{what} must be an object, got {type(value).__name__}")
    return value


def require_list(value: Any, what: str) -> list[Any]:
    """Return ``value`` when it is a list, treating ``None`` as empty."""

    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedListingError(f"{what} must be an array, got {type(value).__name__}")
    return value


def validate_listing(payload: Any) -> Listing:
    """Check the top-level shape of a listing and normalise missing sections."""

    if not isinstance(payload, dict):
        raise MalformedListingError("File server listing must be a JSON object")
    movies = require_mapping(payload.get("movies"), "listing.movies")
    tv = require_mapping(payload.get("tv"), "listing.tv")
    for title, show in tv.items():
        show = require_mapping(show, f"tv[{title!r}]")
        require_mapping(show.get("seasons"), f"tv[{title!r}].seasons")
    return {"movies": dict(movies), "tv": dict(tv)}


class FileServerClient:
    """Fetch the media listing published by the file server."""

    def __init__(
        self,
        config: FileServerConfig,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self._timeout = timeout
        self._transport = transport

    def fetch_listing(self) -> Listing:
        """Download and validate the listing JSON."""

        url = self.config.full_url(self.config.listing_path)
        if url is None:
            raise FileServerError("No listing path configured for the file server")

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FileServerError(
                f"File server responded with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FileServerError(f"Failed to contact file server: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FileServerError("File server returned invalid JSON") from exc

        listing = validate_listing(payload)
        logger.info(
            "Fetched file server listing with %d movies and %d shows",
            len(listing["movies"]),
            len(listing["tv"]),
        )
        return listing
