"""Wikidata source connector."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from cinerecon.adapters.provider_client import ProviderAPIError
from cinerecon.domain.model import ExternalNamespace, Provider
from cinerecon.domain.reconciliation import TransientFetchError, title_similarity

from .client import WikidataClient
from .translator import entity_to_record, is_kind, linked_item_ids, release_year

if TYPE_CHECKING:
    from types import TracebackType

    from cinerecon.adapters.provider_client import ClientFactory
    from cinerecon.config.wikimedia import WikidataConfig
    from cinerecon.domain.reconciliation import SourceQuery, SourceRecord

    from .schema import WikidataEntity

log = getLogger(__name__)


class WikidataConnector:
    def __init__(
        self,
        *,
        config: WikidataConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._client = WikidataClient(config=config, client_factory=client_factory)

    @property
    def provider(self) -> Provider:
        return Provider.WIKIDATA

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
        try:
            entity = await self._find(query)
            if entity is None:
                return None
            labels = await self._client.labels(linked_item_ids(entity, query.kind))
        except ProviderAPIError as exc:
            log.warning("Wikidata fetch failed for %r: %s", query.title, exc)
            raise TransientFetchError(self.provider, str(exc)) from exc
        return entity_to_record(
            entity, kind=query.kind, labels=labels, language=self._client.language
        )

    async def _find(self, query: SourceQuery) -> WikidataEntity | None:
        known_id = query.external_id(ExternalNamespace.WIKIDATA)
        if known_id is not None:
            return (await self._client.entities([known_id])).get(known_id)

        hits = (await self._client.search(query.title)).search
        if not hits:
            return None
        entities = await self._client.entities(hit.id for hit in hits)
        candidates = [
            entities[hit.id]
            for hit in hits
            if hit.id in entities and is_kind(entities[hit.id], query.kind)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda entity: self._score(entity, query))

    def _score(self, entity: WikidataEntity, query: SourceQuery) -> tuple[int, int]:
        similarity = title_similarity(query.title, entity.label(self._client.language))
        year = release_year(entity)
        if query.year is None or year is None:
            return (similarity, -100)
        return (similarity, -abs(query.year - year))
