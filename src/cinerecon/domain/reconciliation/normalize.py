"""Canonical comparison keys for field values.

Every comparison between sources goes through ``Normalizer.normalize`` so that
spelling noise (case, punctuation, diacritics, initials, honorifics, known
spelling variants) never splits a consensus group.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import singledispatch
from types import MappingProxyType
from typing import Final

from cinerecon.domain.model import CastDetail, CastName, FieldValue

log = logging.getLogger(__name__)

_TRAILING_PARENTHETICAL: Final = re.compile(r"\s*\([^()]*\)\s*$")
_NON_WORD: Final = re.compile(r"[^\w\s]|_")
_WHITESPACE: Final = re.compile(r"\s+")
_YEAR: Final = re.compile(r"(?<!\d)(1[89]\d{2}|2\d{3})(?!\d)")

_HONORIFIC_PREFIXES: Final = frozenset({"dr", "mr", "mrs", "ms", "shri", "sri", "smt"})
_GENERATIONAL_SUFFIXES: Final = frozenset({"jr", "sr"})
_LEADING_ARTICLES: Final = frozenset({"the", "a", "an"})

# Keys and values are already normalized forms.
DEFAULT_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "ilayaraja": "ilaiyaraaja",
        "ilaiyaraja": "ilaiyaraaja",
        "illayaraja": "ilaiyaraaja",
        "mm keeravaani": "mm keeravani",
        "mm kreem": "mm keeravani",
        "ss thaman": "thaman s",
        "thaman": "thaman s",
        "dsp": "devi sri prasad",
        "s thaman": "thaman s",
    }
)


def fold_text(text: str) -> str:
    """Lower-case, strip diacritics and punctuation, collapse whitespace."""

    text = _TRAILING_PARENTHETICAL.sub("", text)
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    # apostrophes join ("O'Brien" == "OBrien"), other punctuation separates
    stripped = stripped.replace("'", "").replace("’", "")
    spaced = _NON_WORD.sub(" ", stripped.casefold())
    return _WHITESPACE.sub(" ", spaced).strip()


def _merge_initials(tokens: list[str]) -> list[str]:
    merged: list[str] = []
    run = ""
    for token in tokens:
        if len(token) == 1 and token.isalpha():
            run += token
            continue
        if run:
            merged.append(run)
            run = ""
        merged.append(token)
    if run:
        merged.append(run)
    return merged


def _strip_name_affixes(tokens: list[str]) -> list[str]:
    if len(tokens) > 1 and tokens[0] in _HONORIFIC_PREFIXES:
        tokens = tokens[1:]
    if len(tokens) > 1 and tokens[-1] in _GENERATIONAL_SUFFIXES:
        tokens = tokens[:-1]
    return tokens


@dataclass(frozen=True, slots=True)
class Normalizer:
    """Normalization with a configurable alias table."""

    aliases: Mapping[str, str] = field(default_factory=lambda: DEFAULT_ALIASES)

    def normalize(self, value: FieldValue) -> str:
        return _normalize_value(value, self)

    def equals(self, left: FieldValue, right: FieldValue) -> bool:
        return self.normalize(left) == self.normalize(right)

    def normalize_text(self, text: str) -> str:
        folded = fold_text(text)
        if not folded:
            return ""
        tokens = _strip_name_affixes(_merge_initials(folded.split(" ")))
        key = " ".join(tokens)
        return self.aliases.get(key, key)

    def with_aliases(self, extra: Mapping[str, str]) -> Normalizer:
        """Return a normalizer whose alias table also contains ``extra``.

        Alias keys and targets are normalized before they are stored.
        """

        merged = dict(self.aliases)
        plain = Normalizer(aliases={})
        for variant, canonical in extra.items():
            merged[plain.normalize_text(variant)] = plain.normalize_text(canonical)
        return Normalizer(aliases=MappingProxyType(merged))


@singledispatch
def _normalize_value(value: object, normalizer: Normalizer) -> str:
    raise TypeError(f"Cannot normalize value of type {type(value).__name__}")


@_normalize_value.register(type(None))
def _(_value: None, _normalizer: Normalizer) -> str:
    return ""


@_normalize_value.register
def _(value: str, normalizer: Normalizer) -> str:
    return normalizer.normalize_text(value)


@_normalize_value.register
def _(value: int, _normalizer: Normalizer) -> str:
    return str(value)


@_normalize_value.register
def _(value: CastName, normalizer: Normalizer) -> str:
    return normalizer.normalize_text(value.name)


@_normalize_value.register
def _(value: CastDetail, normalizer: Normalizer) -> str:
    return normalizer.normalize_text(value.name)


@_normalize_value.register
def _(value: tuple, normalizer: Normalizer) -> str:  # pyright: ignore[reportMissingTypeArgument]
    names = (_normalize_value(member, normalizer) for member in value)
    return " ".join(name for name in names if name)


DEFAULT_NORMALIZER: Final = Normalizer()


def normalize(value: FieldValue) -> str:
    return DEFAULT_NORMALIZER.normalize(value)


def equals(left: FieldValue, right: FieldValue) -> bool:
    return DEFAULT_NORMALIZER.equals(left, right)


def normalize_title(value: str | None) -> str:
    """Title key for entity matching: folded, without a leading article."""

    if not value:
        return ""
    tokens = _merge_initials(fold_text(value).split(" "))
    if len(tokens) > 1 and tokens[0] in _LEADING_ARTICLES:
        tokens = tokens[1:]
    return " ".join(token for token in tokens if token)


def normalize_year(value: object) -> int | None:
    """Extract a four digit year from ints, ISO dates or free text."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1800 <= value <= 2999 else None
    if isinstance(value, str):
        match = _YEAR.search(value)
        if match is None:
            log.debug("No year in %r", value)
            return None
        return int(match.group(1))
    return None
