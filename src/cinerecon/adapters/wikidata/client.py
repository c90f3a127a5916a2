"""Wikidata action API client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from cinerecon.adapters.provider_client import ClientFactory, ProviderAPIError, ProviderClient

from .schema import WikidataEntities, WikidataEntity, WikidataSearchResponse

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cinerecon.adapters.provider_client import JsonObject
    from cinerecon.config.wikimedia import WikidataConfig

# wbgetentities accepts at most 50 ids per request
MAX_IDS_PER_REQUEST: Final = 50
ACTION_API_PATH: Final = "api.php"
NOT_FOUND_CODES: Final = frozenset({"no-such-entity"})


class WikidataClient(ProviderClient):
    def __init__(
        self,
        *,
        config: WikidataConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(config.resilience, client_factory=client_factory)
        self.language = config.language

    async def search(self, text: str, *, limit: int = 7) -> WikidataSearchResponse:
        payload = await self._action(
            {
                "action": "wbsearchentities",
                "search": text,
                "language": self.language,
                "type": "item",
                "limit": str(limit),
            }
        )
        return WikidataSearchResponse.model_validate(payload or {})

    async def entities(
        self,
        ids: Iterable[str],
        *,
        props: str = "labels|claims|sitelinks",
    ) -> dict[str, WikidataEntity]:
        unique = list(dict.fromkeys(ids))
        found: dict[str, WikidataEntity] = {}
        for offset in range(0, len(unique), MAX_IDS_PER_REQUEST):
            chunk = unique[offset : offset + MAX_IDS_PER_REQUEST]
            payload = await self._action(
                {
                    "action": "wbgetentities",
                    "ids": "|".join(chunk),
                    "props": props,
                    "languages": self.language,
                }
            )
            if payload is None:
                continue
            response = WikidataEntities.model_validate(payload)
            found.update(
                {key: entity for key, entity in response.entities.items() if entity.exists}
            )
        return found

    async def labels(self, ids: Iterable[str]) -> dict[str, str]:
        entities = await self.entities(ids, props="labels")
        labels: dict[str, str] = {}
        for entity_id, entity in entities.items():
            label = entity.label(self.language)
            if label:
                labels[entity_id] = label
        return labels

    async def _action(self, params: dict[str, str]) -> JsonObject | None:
        payload = await self.get_json(ACTION_API_PATH, params)
        if payload is None:
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            code = str(error.get("code", ""))
            if code in NOT_FOUND_CODES:
                return None
            raise ProviderAPIError(f"wikidata: {code}: {error.get('info', '')}")
        return payload
