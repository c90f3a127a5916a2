"""OMDb source connector.

OMDb only knows titles, so person lookups always come back empty.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from cinerecon.adapters.provider_client import ProviderAPIError
from cinerecon.domain.model import EntityKind, ExternalNamespace, Provider
from cinerecon.domain.reconciliation import TransientFetchError

from .client import OmdbClient
from .translator import title_to_record

if TYPE_CHECKING:
    from types import TracebackType

    from cinerecon.adapters.provider_client import ClientFactory
    from cinerecon.config.omdb import OmdbConfig
    from cinerecon.domain.reconciliation import SourceQuery, SourceRecord

log = getLogger(__name__)


class OmdbConnector:
    def __init__(
        self,
        *,
        config: OmdbConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._client = OmdbClient(config=config, client_factory=client_factory)

    @property
    def provider(self) -> Provider:
        return Provider.OMDB

    async def __aenter__(self) -> Self:
        await self._client.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._client.__aexit__(exc_type, exc, tb)

    async def fetch(self, query: SourceQuery) -> SourceRecord | None:
        if query.kind is not EntityKind.MOVIE:
            return None
        try:
            imdb_id = query.external_id(ExternalNamespace.IMDB)
            if imdb_id is not None:
                title = await self._client.by_imdb_id(imdb_id)
            else:
                title = await self._client.by_title(query.title, year=query.year)
                if title is None and query.year is not None:
                    title = await self._client.by_title(query.title)
        except ProviderAPIError as exc:
            log.warning("OMDb fetch failed for %r: %s", query.title, exc)
            raise TransientFetchError(self.provider, str(exc)) from exc
        if title is None:
            return None
        return title_to_record(title)
