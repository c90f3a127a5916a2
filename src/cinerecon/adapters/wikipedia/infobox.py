"""Minimal wikitext infobox reader.

Only what reconciliation needs: locate the first ``{{Infobox ...}}`` template,
split its parameters and render values to plain text. Templates that carry
lists (plainlist, ubl, hlist) and dates (film date, birth date) are expanded;
every other template is dropped.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Final

_INFOBOX_START = re.compile(r"\{\{\s*infobox[\s_]", re.IGNORECASE)
_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_REF = re.compile(r"<ref[^>/]*>.*?</ref\s*>|<ref[^>]*/>", re.DOTALL | re.IGNORECASE)
_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG = re.compile(r"</?[a-z][^>]*>", re.IGNORECASE)
_LINK = re.compile(r"\[\[(?:[^\]|]*\|)?([^\]]*)\]\]")
_EXTERNAL_LINK = re.compile(r"\[https?://\S+\s*([^\]]*)\]")
_EMPHASIS = re.compile(r"'{2,}")
_NAMED_ARG = re.compile(r"^\s*[\w -]+?\s*=")
_SPACES = re.compile(r"[ \t]+")

LIST_TEMPLATES: Final = frozenset(
    {"plainlist", "plain list", "flatlist", "flat list", "ubl", "unbulleted list", "hlist", "bulleted list"}
)
DATE_TEMPLATES: Final = frozenset(
    {"film date", "start date", "birth date", "birth date and age", "bda", "release date", "dts"}
)
FIRST_ARG_TEMPLATES: Final = frozenset({"nowrap", "nobr", "small", "abbr", "nowrap begin"})
LAST_ARG_TEMPLATES: Final = frozenset({"lang", "transl", "langx"})


@dataclass(frozen=True, slots=True)
class Infobox:
    kind: str
    params: dict[str, str]

    def text(self, *names: str) -> str | None:
        """Rendered value of the first non-empty parameter, lines joined by commas."""

        for name in names:
            lines = _lines(self.params.get(_param_key(name), ""))
            if lines:
                return ", ".join(lines)
        return None

    def items(self, *names: str) -> list[str]:
        """Rendered list items of the first non-empty parameter."""

        for name in names:
            lines = _lines(self.params.get(_param_key(name), ""))
            if len(lines) == 1:
                lines = [part.strip() for part in lines[0].split(",") if part.strip()]
            if lines:
                return lines
        return []

    def first(self, *names: str) -> str | None:
        items = self.items(*names)
        return items[0] if items else None


def find_infobox(wikitext: str) -> Infobox | None:
    match = _INFOBOX_START.search(wikitext)
    if match is None:
        return None
    end = _template_end(wikitext, match.start())
    if end is None:
        return None
    body = _REF.sub("", _COMMENT.sub("", wikitext[match.start() + 2 : end - 2]))
    parts = _split_top_level(body)
    kind = parts[0].strip()[len("infobox") :].strip().casefold()
    params: dict[str, str] = {}
    for part in parts[1:]:
        key, sep, value = part.partition("=")
        if sep:
            params[_param_key(key)] = value.strip()
    return Infobox(kind=kind, params=params)


def render(value: str) -> str:
    """Render a wikitext fragment to plain text, one list item per line."""

    text = _REF.sub("", _COMMENT.sub("", value))
    text = _render_templates(text)
    text = _BREAK.sub("\n", text)
    text = _TAG.sub("", text)
    text = _LINK.sub(r"\1", text)
    text = _EXTERNAL_LINK.sub(r"\1", text)
    text = _EMPHASIS.sub("", text)
    return html.unescape(text).replace("\xa0", " ")


def _lines(value: str) -> list[str]:
    lines: list[str] = []
    for raw in render(value).splitlines():
        line = _SPACES.sub(" ", raw.strip().lstrip("*").strip()).rstrip(",;").strip()
        if line and line not in {"-", "N/A"}:
            lines.append(line)
    return lines


def _param_key(name: str) -> str:
    return " ".join(name.replace("_", " ").split()).casefold()


def _template_end(text: str, start: int) -> int | None:
    depth = 0
    index = start
    while index < len(text) - 1:
        pair = text[index : index + 2]
        if pair == "{{":
            depth += 1
            index += 2
        elif pair == "}}":
            depth -= 1
            index += 2
            if depth == 0:
                return index
        else:
            index += 1
    return None


def _split_top_level(body: str) -> list[str]:
    """Split on ``|`` outside nested templates and links."""

    parts: list[str] = []
    current: list[str] = []
    depth = 0
    index = 0
    while index < len(body):
        pair = body[index : index + 2]
        if pair in ("{{", "[["):
            depth += 1
            current.append(pair)
            index += 2
            continue
        if pair in ("}}", "]]"):
            depth = max(depth - 1, 0)
            current.append(pair)
            index += 2
            continue
        char = body[index]
        if char == "|" and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    parts.append("".join(current))
    return parts


def _render_templates(text: str) -> str:
    out: list[str] = []
    index = 0
    while True:
        start = text.find("{{", index)
        if start == -1:
            out.append(text[index:])
            break
        out.append(text[index:start])
        end = _template_end(text, start)
        if end is None:
            # unbalanced braces: drop the remainder
            break
        out.append(_render_template(text[start + 2 : end - 2]))
        index = end
    return "".join(out)


def _render_template(inner: str) -> str:
    parts = _split_top_level(inner)
    name = " ".join(parts[0].replace("_", " ").split()).casefold()
    args = [_render_templates(part) for part in parts[1:] if not _NAMED_ARG.match(part)]
    if name in LIST_TEMPLATES:
        return "\n" + "\n".join(args) + "\n"
    if name in DATE_TEMPLATES:
        numbers = [arg.strip() for arg in args if arg.strip().isdigit()][:3]
        if not numbers:
            return ""
        return "-".join([numbers[0], *(f"{int(part):02d}" for part in numbers[1:])])
    if name in FIRST_ARG_TEMPLATES:
        return args[0] if args else ""
    if name in LAST_ARG_TEMPLATES:
        return args[-1] if args else ""
    return ""
