"""Wikipedia ``action=parse`` response schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class WikipediaPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    pageid: int | None = None
    wikitext: str = ""

    @field_validator("wikitext", mode="before")
    @classmethod
    def _unwrap_legacy_format(cls, value: object) -> object:
        # formatversion=1 wraps content as {"*": "..."}
        if isinstance(value, dict) and "*" in value:
            return value["*"]
        return value


class WikipediaParseResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parse: WikipediaPage
