"""Wikipedia action API client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from cinerecon.adapters.provider_client import ClientFactory, ProviderAPIError, ProviderClient

from .schema import WikipediaPage, WikipediaParseResponse

if TYPE_CHECKING:
    from cinerecon.config.wikimedia import WikipediaConfig

ACTION_API_PATH: Final = "api.php"
NOT_FOUND_CODES: Final = frozenset({"missingtitle", "invalidtitle"})


class WikipediaClient(ProviderClient):
    def __init__(
        self,
        *,
        config: WikipediaConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(config.resilience, client_factory=client_factory)

    async def page(self, title: str) -> WikipediaPage | None:
        """Wikitext of a page, following redirects; ``None`` if it does not exist."""

        payload = await self.get_json(
            ACTION_API_PATH,
            {"action": "parse", "page": title, "prop": "wikitext", "redirects": "1"},
        )
        if payload is None:
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            code = str(error.get("code", ""))
            if code in NOT_FOUND_CODES:
                return None
            raise ProviderAPIError(f"wikipedia: {code}: {error.get('info', '')}")
        return WikipediaParseResponse.model_validate(payload).parse
