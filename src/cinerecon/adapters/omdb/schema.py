"""OMDb response schema.

OMDb answers every lookup with HTTP 200 and signals misses through
``"Response": "False"``; absent values are the literal string ``"N/A"``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

OMDB_MISSING = "N/A"


class OmdbTitle(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    response: str = Field(alias="Response")
    error: str | None = Field(default=None, alias="Error")
    title: str | None = Field(default=None, alias="Title")
    year: str | None = Field(default=None, alias="Year")
    runtime: str | None = Field(default=None, alias="Runtime")
    director: str | None = Field(default=None, alias="Director")
    writer: str | None = Field(default=None, alias="Writer")
    actors: str | None = Field(default=None, alias="Actors")
    plot: str | None = Field(default=None, alias="Plot")
    language: str | None = Field(default=None, alias="Language")
    imdb_id: str | None = Field(default=None, alias="imdbID")
    kind: str | None = Field(default=None, alias="Type")

    @field_validator("*", mode="before")
    @classmethod
    def _missing_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == OMDB_MISSING:
            return None
        return value

    @property
    def found(self) -> bool:
        return self.response.casefold() == "true"
