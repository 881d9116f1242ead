"""HTTP client for the Mapbox isochrone service."""

from __future__ import annotations

import logging
import time
from typing import Protocol

import httpx

from ...config import settings
from ...models.domain import Origin, Polygon
from ..geospatial import GeometryError, polygon_from_geojson

logger = logging.getLogger(__name__)


class ProviderConfigurationError(RuntimeError):
    """Raised when the isochrone provider cannot be called because it is not configured."""


class IsochroneProvider(Protocol):
    def isochrone(self, origin: Origin, minutes: int) -> list[Polygon]:
        ...


class MapboxIsochroneClient:
    """One GET per origin against ``/isochrone/v1/mapbox/{profile}/{lon},{lat}``.

    Failures for an origin (non-2xx, network error, timeout, unreadable body) are
    logged and produce no polygons. A missing access token is a configuration
    error and is raised on the first call rather than at construction.
    """

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else settings.mapbox_access_token
        self.base_url = (base_url or settings.mapbox_base_url).rstrip("/")
        self.profile = profile or settings.mapbox_profile
        self.timeout = timeout if timeout is not None else settings.isochrone_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.isochrone_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.isochrone_backoff_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.access_token)

    def _get_client(self) -> httpx.Client:
        # One client per call; calls run on worker threads.
        return httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport)

    def _request(self, origin: Origin, minutes: int) -> dict:
        url = f"{self.base_url}/isochrone/v1/mapbox/{self.profile}/{origin.longitude},{origin.latitude}"
        params = {
            "contours_minutes": str(minutes),
            "polygons": "true",
            "access_token": self.access_token,
        }
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    return response.json()
                except (httpx.HTTPError, ValueError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    wait_time = self.backoff_seconds * attempt
                    logger.debug(
                        "Isochrone request failed, retrying in %.1fs (attempt %d/%d): %s",
                        wait_time,
                        attempt,
                        self.max_retries,
                        exc,
                    )
                    time.sleep(wait_time)
        finally:
            client.close()

    def isochrone(self, origin: Origin, minutes: int) -> list[Polygon]:
        if not self.access_token:
            raise ProviderConfigurationError("Mapbox access token not configured (set TIE_MAPBOX_ACCESS_TOKEN).")

        try:
            data = self._request(origin, minutes)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Isochrone provider returned %s for origin (%s, %s)",
                exc.response.status_code,
                origin.latitude,
                origin.longitude,
            )
            return []
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Isochrone request failed for origin (%s, %s): %s", origin.latitude, origin.longitude, exc)
            return []

        polygons: list[Polygon] = []
        features = data.get("features") if isinstance(data, dict) else None
        for feature in features or []:
            if not isinstance(feature, dict):
                continue
            try:
                polygon = polygon_from_geojson(feature.get("geometry"))
            except GeometryError as exc:
                logger.debug("Ignoring isochrone feature: %s", exc)
                continue
            if polygon.exterior.is_degenerate:
                continue
            polygons.append(polygon)
        return polygons


def check_health(client: MapboxIsochroneClient | None = None) -> bool:
    """Report whether the provider can be called at all.

    No request is made; isochrone calls are billed per request.
    """
    provider = client or MapboxIsochroneClient()
    return provider.configured
