"""Thin wrapper around the Google Places and Geocoding web services."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from typing import Any
from urllib.parse import urlencode

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)

_TIMEOUT = httpx.Timeout(connect=5.0, read=15.0, write=15.0, pool=5.0)

OK_STATUSES = frozenset({"OK", "ZERO_RESULTS"})


class PlacesClient:
    """Synchronous client; one instance per request."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://maps.googleapis.com/maps/api",
        http_client: httpx.Client | None = None,
        page_token_delay: float = 2.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.page_token_delay = page_token_delay
        self._http = http_client or httpx.Client(timeout=_TIMEOUT)

    def close(self) -> None:
        self._http.close()

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query = {key: value for key, value in params.items() if value is not None}
        query["key"] = self.api_key
        response = self._http.get(f"{self.base_url}/{path}", params=query)
        response.raise_for_status()
        data = response.json()
        api_status = data.get("status")
        if api_status not in OK_STATUSES:
            logger.warning(
                "places api returned status",
                extra={
                    "endpoint": path,
                    "api_status": api_status,
                    "error_message": data.get("error_message"),
                },
            )
        return data

    def text_search(
        self,
        query: str,
        *,
        place_type: str | None = None,
        location: tuple[float, float] | None = None,
        radius: int | None = None,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"query": query, "type": place_type, "radius": radius}
        if location is not None:
            params["location"] = f"{location[0]},{location[1]}"
        if page_token:
            params = {"pagetoken": page_token}
        return self._get("place/textsearch/json", params)

    def text_search_pages(
        self, query: str, *, max_pages: int = 3, **kwargs: Any
    ) -> list[dict[str, Any]]:
        """Collect results across ``next_page_token`` pages."""

        results: list[dict[str, Any]] = []
        page_token: str | None = None
        for page in range(max_pages):
            if page and self.page_token_delay:
                # Tokens only become valid after a short delay.
                time.sleep(self.page_token_delay)
            data = self.text_search(query, page_token=page_token, **kwargs)
            if data.get("status") != "OK":
                break
            results.extend(data.get("results") or [])
            page_token = data.get("next_page_token")
            if not page_token:
                break
        return results

    def place_details(self, place_id: str, fields: str) -> dict[str, Any] | None:
        data = self._get("place/details/json", {"place_id": place_id, "fields": fields})
        if data.get("status") != "OK":
            return None
        return data.get("result")

    def reverse_geocode(self, lat: float, lng: float) -> list[dict[str, Any]]:
        data = self._get("geocode/json", {"latlng": f"{lat},{lng}"})
        return data.get("results") or []

    def geocode_place(self, place_id: str) -> list[dict[str, Any]]:
        data = self._get("geocode/json", {"place_id": place_id})
        return data.get("results") or []

    def autocomplete(
        self,
        text: str,
        *,
        types: str | None = None,
        components: str | None = None,
    ) -> list[dict[str, Any]]:
        data = self._get(
            "place/autocomplete/json",
            {"input": text, "types": types, "components": components},
        )
        return data.get("predictions") or []

    def photo_url(
        self, reference: str, *, max_width: int, max_height: int | None = None
    ) -> str:
        params: dict[str, Any] = {"maxwidth": max_width}
        if max_height is not None:
            params["maxheight"] = max_height
        params["photo_reference"] = reference
        params["key"] = self.api_key
        return f"{self.base_url}/place/photo?{urlencode(params)}"


def get_places_client() -> Iterator[PlacesClient | None]:
    """Yield a client, or ``None`` when no API key is configured."""

    settings = get_settings()
    if not settings.google_maps_api_key:
        yield None
        return

    client = PlacesClient(
        settings.google_maps_api_key,
        base_url=settings.places_api_base_url,
        page_token_delay=settings.places_page_token_delay_seconds,
    )
    try:
        yield client
    finally:
        client.close()


__all__ = ["PlacesClient", "get_places_client"]
