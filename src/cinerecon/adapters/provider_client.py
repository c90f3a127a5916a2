"""Base for the JSON API clients of the external providers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self, cast

import httpx

from .http_resilience import ResilientClient, describe_http_error

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from cinerecon.config.http_resilience import ResilienceConfig

log = logging.getLogger(__name__)

type JsonObject = dict[str, Any]
type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


class ProviderAPIError(RuntimeError):
    """Raised when a provider cannot be reached or answers with an error."""


class ProviderClient:
    """Holds one ``ResilientClient`` for the lifetime of a run.

    Use as an async context manager; requests outside the context fail.
    """

    def __init__(
        self,
        resilience: ResilienceConfig,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._resilience = resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    @property
    def name(self) -> str:
        return self._resilience.name

    async def __aenter__(self) -> Self:
        if self._client is None:
            self._client = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_json(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
    ) -> JsonObject | None:
        """GET ``path`` and return the JSON object, or ``None`` on 404."""

        if self._client is None:
            raise ProviderAPIError(f"{self.name} client used outside of its context")
        try:
            response = await self._client.get(path, params=dict(params) if params else None)
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderAPIError(f"{self.name}: {describe_http_error(exc)}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderAPIError(f"{self.name}: response is not JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderAPIError(f"{self.name}: unexpected response payload")
        return cast(JsonObject, payload)
