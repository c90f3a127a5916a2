"""Wikidata action API response schemas (``wbsearchentities``, ``wbgetentities``)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

RANK_ORDER = {"preferred": 0, "normal": 1}


class WikidataBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WikidataDataValue(WikidataBaseModel):
    type: str
    value: Any = None


class WikidataSnak(WikidataBaseModel):
    snaktype: str = "value"
    property: str
    datavalue: WikidataDataValue | None = None


class WikidataStatement(WikidataBaseModel):
    mainsnak: WikidataSnak
    rank: str = "normal"


class WikidataLabel(WikidataBaseModel):
    language: str
    value: str


class WikidataSitelink(WikidataBaseModel):
    site: str
    title: str


class WikidataEntity(WikidataBaseModel):
    id: str
    # present (as an empty string) when the id does not exist
    missing: str | None = None
    labels: dict[str, WikidataLabel] = Field(default_factory=dict[str, WikidataLabel])
    claims: dict[str, list[WikidataStatement]] = Field(
        default_factory=dict[str, list[WikidataStatement]]
    )
    sitelinks: dict[str, WikidataSitelink] = Field(default_factory=dict[str, WikidataSitelink])

    @property
    def exists(self) -> bool:
        return self.missing is None

    def label(self, language: str) -> str | None:
        label = self.labels.get(language)
        return label.value if label is not None else None

    def values(self, prop: str) -> list[Any]:
        """Values of a property, preferred rank first, deprecated dropped."""

        statements = [
            statement
            for statement in self.claims.get(prop, ())
            if statement.rank in RANK_ORDER
            and statement.mainsnak.snaktype == "value"
            and statement.mainsnak.datavalue is not None
        ]
        statements.sort(key=lambda statement: RANK_ORDER[statement.rank])
        return [statement.mainsnak.datavalue.value for statement in statements]  # type: ignore[union-attr]

    def item_ids(self, prop: str) -> list[str]:
        ids: list[str] = []
        for value in self.values(prop):
            if isinstance(value, dict) and isinstance(value.get("id"), str):
                ids.append(value["id"])
        return ids


class WikidataEntities(WikidataBaseModel):
    entities: dict[str, WikidataEntity] = Field(default_factory=dict[str, WikidataEntity])


class WikidataSearchHit(WikidataBaseModel):
    id: str
    label: str | None = None
    description: str | None = None


class WikidataSearchResponse(WikidataBaseModel):
    search: list[WikidataSearchHit] = Field(default_factory=list[WikidataSearchHit])
