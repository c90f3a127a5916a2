"""Wikipedia source connector."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from cinerecon.adapters.provider_client import ProviderAPIError
from cinerecon.domain.model import EntityKind, ExternalNamespace, Provider
from cinerecon.domain.reconciliation import TransientFetchError

from .client import WikipediaClient
from .translator import page_to_record

if TYPE_CHECKING:
    from types import TracebackType

    from cinerecon.adapters.provider_client import ClientFactory
    from cinerecon.config.wikimedia import WikipediaConfig
    from cinerecon.domain.reconciliation import SourceQuery, SourceRecord

log = getLogger(__name__)


def page_candidates(query: SourceQuery, film_suffixes: tuple[str, ...]) -> list[str]:
    """Page titles to try, most specific first."""

    known = query.external_id(ExternalNamespace.WIKIPEDIA)
    if known is not None:
        return [known]
    if query.kind is EntityKind.PERSON:
        return [query.title, f"{query.title} (actor)"]
    candidates: list[str] = []
    if query.year is not None:
        candidates.append(f"{query.title} ({query.year} film)")
    candidates.extend(f"{query.title} ({suffix})" for suffix in film_suffixes)
    candidates.append(query.title)
    return candidates


class WikipediaConnector:
    def __init__(
        self,
        *,
        config: WikipediaConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config
        self._client = WikipediaClient(config=config, client_factory=client_factory)

    @property
    def provider(self) -> Provider:
        return Provider.WIKIPEDIA

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
        for title in page_candidates(query, self._config.film_suffixes):
            try:
                page = await self._client.page(title)
            except ProviderAPIError as exc:
                log.warning("Wikipedia fetch failed for %r: %s", title, exc)
                raise TransientFetchError(self.provider, str(exc)) from exc
            if page is None:
                continue
            record = page_to_record(page, kind=query.kind)
            if record is not None:
                return record
            log.debug("Wikipedia page %r has no matching infobox", page.title)
        return None
