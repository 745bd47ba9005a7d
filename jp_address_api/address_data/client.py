"""
Thin HTTP client for the Japanese address master data.

The data source publishes a prefecture -> cities table and one town list per
city as static JSON. Responses are cached in memory for the life of the
client; failures are mapped to internal exceptions that the parser lets
propagate.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from jp_address_api.config import ServiceConfig, default_config

logger = logging.getLogger(__name__)


class AddressDataError(Exception):
    """Base exception for address data source errors."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class AddressDataUnavailableError(AddressDataError):
    """Raised when the data source cannot be reached."""


class AddressDataNotFoundError(AddressDataError):
    """Raised when the requested table does not exist."""


class AddressDataClient:
    """Async client for the prefecture/city/town tables."""

    def __init__(
        self,
        config: ServiceConfig | None = None,
        *,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or default_config
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None
        self._cities: Optional[Dict[str, List[str]]] = None
        self._towns: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.data_base_url, timeout=self.config.data_timeout
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _process_response(self, response: httpx.Response, path: str) -> Any:
        if response.status_code == 404:
            raise AddressDataNotFoundError(
                "Address data not found.", code="NOT_FOUND", status_code=404
            )
        if response.status_code >= 400:
            raise AddressDataError(
                "Address data source error.", status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Address data at %s is not valid JSON", path)
            raise AddressDataError(
                "Unexpected response from address data source.",
                status_code=response.status_code,
            ) from exc

    async def _request(self, path: str) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(path)
        except httpx.RequestError as exc:
            logger.warning("Address data source unreachable for path %s", path)
            raise AddressDataUnavailableError("Address data source unreachable") from exc
        return self._process_response(response, path)

    async def fetch_cities(self) -> Dict[str, List[str]]:
        """Return the prefecture -> city names table."""
        if self._cities is not None:
            return self._cities
        data = await self._request("/ja.json")
        if not isinstance(data, dict):
            raise AddressDataError("Unexpected response from address data source.")
        cities = {
            str(prefecture): [str(city) for city in names if isinstance(city, str)]
            for prefecture, names in data.items()
            if isinstance(names, list)
        }
        self._cities = cities
        return cities

    async def fetch_towns(self, prefecture: str, city: str) -> List[Dict[str, Any]]:
        """Return the town entries (``{"town": ..., ...}``) of one city."""
        key = (prefecture, city)
        cached = self._towns.get(key)
        if cached is not None:
            return cached
        path = f"/ja/{quote(prefecture, safe='')}/{quote(city, safe='')}.json"
        data = await self._request(path)
        if not isinstance(data, list):
            raise AddressDataError("Unexpected response from address data source.")
        towns = [entry for entry in data if isinstance(entry, dict) and entry.get("town")]
        self._towns[key] = towns
        return towns


default_client = AddressDataClient()
