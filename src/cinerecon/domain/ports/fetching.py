"""Ports for fetching a provider's view of one entity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from cinerecon.domain.model import Provider
    from cinerecon.domain.reconciliation.claims import SourceQuery, SourceRecord


@runtime_checkable
class SourceConnector(Protocol):
    """One external provider.

    ``fetch`` returns ``None`` when the provider has no matching record and
    raises ``TransientFetchError`` when the provider could not be reached.
    Connectors are entered once per run so their HTTP client, and with it the
    provider's rate limiter, is shared by every entity of the run.
    """

    @property
    def provider(self) -> Provider: ...

    async def fetch(self, query: SourceQuery) -> SourceRecord | None: ...

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...
