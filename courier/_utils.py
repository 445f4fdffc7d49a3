from __future__ import annotations

import re
import typing

LINK_URI_REGEX = re.compile(r"<\s*([^>]*?)\s*>")
LINK_REL_REGEX = re.compile(r"""(?:^|;)\s*rel\s*=\s*(?:"([^"]*)"|([^\s;,]+))""", re.IGNORECASE)


def normalize_mime(content_type: str | None) -> str:
    """
    Lower-case a Content-Type value and strip its parameters.

    >>> normalize_mime("Application/JSON; charset=utf-8")
    'application/json'
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def parse_header_params(value: str | None) -> dict[str, str]:
    """
    Return the `key=value` parameters that follow the first `;` of a header.
    """
    params: dict[str, str] = {}
    if not value:
        return params
    for segment in value.split(";")[1:]:
        key, sep, item = segment.partition("=")
        if not sep:
            continue
        params[key.strip().lower()] = item.strip().strip("\"'")
    return params


def get_charset(content_type: str | None) -> str | None:
    return parse_header_params(content_type).get("charset") or None


def parse_links(value: str | None) -> dict[str, str]:
    """
    Parse a `Link` header into a `{rel: uri}` mapping.

    Every token of a space separated `rel` maps to the same URI.
    Entries without a URI or a `rel` are skipped.
    """
    links: dict[str, str] = {}
    if not value:
        return links
    for entry in _split_link_entries(value):
        uri = LINK_URI_REGEX.search(entry)
        if uri is None:
            continue
        params = entry[uri.end():]
        rel = LINK_REL_REGEX.search(params)
        if rel is None:
            continue
        for name in (rel.group(1) or rel.group(2) or "").split():
            links[name] = uri.group(1)
    return links


def _split_link_entries(value: str) -> typing.Iterator[str]:
    # Commas inside <...> or quoted params do not separate entries.
    start = 0
    in_quote = False
    in_angle = False
    for index, char in enumerate(value):
        if char == '"' and not in_angle:
            in_quote = not in_quote
        elif char == "<" and not in_quote:
            in_angle = True
        elif char == ">" and not in_quote:
            in_angle = False
        elif char == "," and not in_quote and not in_angle:
            yield value[start:index]
            start = index + 1
    yield value[start:]
