"""OMDb API client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cinerecon.adapters.provider_client import ClientFactory, ProviderAPIError, ProviderClient

from .schema import OmdbTitle

if TYPE_CHECKING:
    from cinerecon.config.omdb import OmdbConfig

# Error texts OMDb uses for an ordinary miss; anything else is a real failure
NOT_FOUND_ERRORS = ("movie not found", "incorrect imdb id", "series or episode not found")


class OmdbClient(ProviderClient):
    def __init__(
        self,
        *,
        config: OmdbConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(config.resilience, client_factory=client_factory)

    async def by_imdb_id(self, imdb_id: str) -> OmdbTitle | None:
        return await self._lookup({"i": imdb_id, "plot": "full"})

    async def by_title(self, title: str, *, year: int | None = None) -> OmdbTitle | None:
        params = {"t": title, "type": "movie", "plot": "full"}
        if year is not None:
            params["y"] = str(year)
        return await self._lookup(params)

    async def _lookup(self, params: dict[str, str]) -> OmdbTitle | None:
        payload = await self.get_json("", params)
        if payload is None:
            return None
        result = OmdbTitle.model_validate(payload)
        if result.found:
            return result
        error = (result.error or "").casefold()
        if any(error.startswith(marker) for marker in NOT_FOUND_ERRORS):
            return None
        raise ProviderAPIError(f"omdb: {result.error or 'unknown error'}")
