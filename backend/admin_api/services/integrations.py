"""Queue proxies for the SABnzbd, Radarr, Sonarr and Tdarr integrations."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..schemas import ConfigModel

logger = logging.getLogger(__name__)


class IntegrationError(RuntimeError):
    """Raised when an integration cannot be queried."""


class IntegrationNotConfiguredError(IntegrationError):
    """Raised when the integration URL or API key is missing."""


@dataclass(frozen=True, slots=True)
class Integration:
    name: str
    label: str
    path: str
    params: tuple[tuple[str, str], ...] = ()


INTEGRATIONS: dict[str, Integration] = {
    "sabnzbd": Integration("sabnzbd", "SABnzbd", "api", (("mode", "queue"),)),
    "radarr": Integration("radarr", "Radarr", "api/v3/queue"),
    "sonarr": Integration("sonarr", "Sonarr", "api/v3/queue"),
    "tdarr": Integration("tdarr", "Tdarr", "api/v2/get-nodes"),
}


class IntegrationService:
    """Fetch queue state from the download and transcode integrations."""

    def __init__(self, *, timeout: float = 5.0, transport: httpx.BaseTransport | None = None) -> None:
        self._timeout = timeout
        self.transport = transport

    def queue(self, name: str, config: ConfigModel) -> Any:
        integration = INTEGRATIONS[name]
        base_url = getattr(config, f"{name}_url")
        api_key = getattr(config, f"{name}_api_key")
        if not base_url or not api_key:
            raise IntegrationNotConfiguredError(f"{integration.label} URL or API key not configured")

        url = f"{base_url.rstrip('/')}/{integration.path}"
        params = dict(integration.params)
        params["apikey"] = api_key
        try:
            with httpx.Client(timeout=self._timeout, transport=self.transport) as client:
                response = client.get(url, params=params)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("%s queue request failed with HTTP %s", integration.label, exc.response.status_code)
            raise IntegrationError(f"Failed to fetch {integration.label} queue") from exc
        except httpx.HTTPError as exc:
            logger.error("%s queue request failed: %s", integration.label, exc)
            raise IntegrationError(f"Failed to fetch {integration.label} queue") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise IntegrationError(f"{integration.label} returned invalid JSON") from exc
