"""
An implementation of `urlparse` that provides URL validation and normalization
as described by RFC3986, extended with the request-target shorthands accepted
by `courier` (`host:port/path`, `:port/path`, `/path`).

`resolve()` is a pure function of its input: resolving the same target twice
yields equal `ParsedURL` values.
"""

from __future__ import annotations

import ipaddress
import re
import typing
import urllib.parse

import idna

from ._exceptions import InvalidURL

MAX_URL_LENGTH = 65536

DEFAULT_SCHEME = "http"
DEFAULT_HOSTNAME = "localhost"
DEFAULT_PORTS = {"ftp": 21, "http": 80, "https": 443, "ws": 80, "wss": 443}

UNRESERVED_CHARACTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
SUB_DELIMS = "!$&'()*+,;="
HOST_SAFE = SUB_DELIMS + '"`{}%|\\'

PERCENT_ENCODED_REGEX = re.compile("(%[A-Fa-f0-9]{2})")

_ALWAYS_EXCLUDED = (0x20, 0x22, 0x3C, 0x3E)
_PATH_EXCLUDED = _ALWAYS_EXCLUDED + (0x23, 0x3F, 0x60, 0x7B, 0x7D)
_USERINFO_EXTRA = (0x2F, 0x3B, 0x3D, 0x40, 0x5B, 0x5C, 0x5D, 0x5E, 0x7C)


def _safe_chars(*excluded: int) -> str:
    excluded_set = set(excluded)
    return "".join(chr(i) for i in range(0x20, 0x7F) if i not in excluded_set)


FRAG_SAFE = _safe_chars(*_ALWAYS_EXCLUDED, 0x60)
QUERY_SAFE = _safe_chars(*_ALWAYS_EXCLUDED, 0x23)
PATH_SAFE = _safe_chars(*_PATH_EXCLUDED)
USERINFO_SAFE = _safe_chars(*_PATH_EXCLUDED, *_USERINFO_EXTRA)

SCHEME_PREFIX_REGEX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

URL_REGEX = re.compile(
    r"(?:(?P<scheme>([a-zA-Z][a-zA-Z0-9+.-]*)?):)?"
    r"(?://(?P<authority>[^/?#]*))?"
    r"(?P<path>[^?#]*)"
    r"(?:\?(?P<query>[^#]*))?"
    r"(?:#(?P<fragment>.*))?"
)

AUTHORITY_REGEX = re.compile(
    r"(?:(?P<userinfo>.*)@)?(?P<host>(\[.*\]|[^:@]*)):?(?P<port>.*)?"
)

COMPONENT_REGEX = {
    "scheme": re.compile("([a-zA-Z][a-zA-Z0-9+.-]*)?"),
    "authority": re.compile("[^/?#]*"),
    "path": re.compile("[^?#]*"),
    "query": re.compile("[^#]*"),
    "fragment": re.compile(".*"),
    "host": re.compile("(\\[.*\\]|[^:]*)"),
    "port": re.compile(".*"),
}

IPv4_STYLE_HOSTNAME = re.compile(r"^[0-9]+\.[0-9]+\.[0-9]+\.[0-9]+$")
IPv6_STYLE_HOSTNAME = re.compile(r"^\[.*\]$")


class ParsedURL(typing.NamedTuple):
    scheme: str
    userinfo: str
    hostname: str
    port: int | None
    pathname: str
    query: str
    fragment: str | None

    @property
    def protocol(self) -> str:
        return f"{self.scheme}:"

    @property
    def host(self) -> str:
        hostname = f"[{self.hostname}]" if ":" in self.hostname else self.hostname
        return hostname + (f":{self.port}" if self.port is not None else "")

    @property
    def authority(self) -> str:
        return (f"{self.userinfo}@" if self.userinfo else "") + self.host

    @property
    def search(self) -> str:
        return f"?{self.query}" if self.query else ""

    @property
    def path(self) -> str:
        return self.pathname + self.search

    @property
    def href(self) -> str:
        return str(self)

    def copy_with(self, **kwargs: typing.Any) -> ParsedURL:
        if not kwargs:
            return self
        defaults: dict[str, str | None] = {
            "scheme": self.scheme,
            "authority": self.authority,
            "path": self.pathname,
            "query": self.query or None,
            "fragment": self.fragment,
        }
        defaults.update(kwargs)
        return urlparse("", **defaults)

    def merge_query(self, query: str) -> ParsedURL:
        """
        Return a copy with `query` appended after any existing query string.
        """
        if not query:
            return self
        merged = f"{self.query}&{query}" if self.query else query
        return self._replace(query=quote(merged, safe=QUERY_SAFE))

    def __str__(self) -> str:
        authority = self.authority
        return "".join([
            f"{self.scheme}:" if self.scheme else "",
            f"//{authority}" if authority else "",
            self.pathname,
            self.search,
            f"#{self.fragment}" if self.fragment is not None else "",
        ])


def resolve(target: typing.Any) -> ParsedURL:
    """
    Normalize a request target into a `ParsedURL`.

    Accepts a `ParsedURL`, a `urllib.parse` result, an absolute URL string or
    a shorthand missing its scheme, which defaults to `http://localhost`.
    """
    if isinstance(target, ParsedURL):
        return target
    if isinstance(target, (urllib.parse.ParseResult, urllib.parse.SplitResult)):
        target = target.geturl()
    if not isinstance(target, str):
        raise TypeError(f"Invalid type for url. Expected str or ParsedURL, got {type(target)!r}")

    url = target.strip()
    if url.startswith("//"):
        url = f"{DEFAULT_SCHEME}:{url}"
    elif not SCHEME_PREFIX_REGEX.match(url):
        url = f"{DEFAULT_SCHEME}://{url}"

    parsed = urlparse(url)
    if not parsed.hostname and parsed.scheme in ("http", "https"):
        parsed = parsed._replace(hostname=DEFAULT_HOSTNAME)
    if not parsed.pathname:
        parsed = parsed._replace(pathname="/")
    return parsed


def to_string(target: typing.Any) -> str:
    """
    Format a request target back to a string, without normalizing it.
    """
    if isinstance(target, str):
        return target
    if isinstance(target, (urllib.parse.ParseResult, urllib.parse.SplitResult)):
        return target.geturl()
    return str(target)


def _check_length(value: str, label: str) -> None:
    if len(value) > MAX_URL_LENGTH:
        raise InvalidURL(f"{label} too long")
    for position, char in enumerate(value):
        if char.isascii() and not char.isprintable():
            raise InvalidURL(
                f"Invalid non-printable ASCII character in {label}, {char!r} at position {position}."
            )


def _component_overrides(components: dict[str, typing.Any]) -> dict[str, str | None]:
    overrides: dict[str, str | None] = {}
    for key, value in components.items():
        if key not in COMPONENT_REGEX:
            raise TypeError(f"Unknown URL component {key!r}")
        if key == "port" and isinstance(value, int):
            value = str(value)
        elif key == "host" and value and ":" in value and not IPv6_STYLE_HOSTNAME.match(value):
            value = f"[{value}]"
        if value is not None:
            _check_length(value, f"URL {key} component")
            if not COMPONENT_REGEX[key].fullmatch(value):
                raise InvalidURL(f"Invalid URL component '{key}'")
        overrides[key] = value
    return overrides


def urlparse(url: str = "", **components: typing.Any) -> ParsedURL:
    """
    Parse and normalize `url`. Keyword components (`scheme`, `authority`,
    `host`, `port`, `path`, `query`, `fragment`) replace the parsed ones.
    """
    _check_length(url, "URL")
    overrides = _component_overrides(components)

    parts = URL_REGEX.match(url).groupdict()  # type: ignore[union-attr]
    parts.update((key, value) for key, value in overrides.items() if key in parts)
    authority = AUTHORITY_REGEX.match(parts["authority"] or "").groupdict()  # type: ignore[union-attr]
    for key in ("host", "port"):
        if key in overrides:
            authority[key] = overrides[key]

    scheme = (parts["scheme"] or "").lower()
    userinfo = quote(authority["userinfo"] or "", safe=USERINFO_SAFE)
    hostname = encode_host(authority["host"] or "")
    port = normalize_port(authority["port"], scheme)
    path = parts["path"] or ""

    has_authority = bool(userinfo or hostname or port is not None)
    validate_path(path, has_scheme=bool(scheme), has_authority=has_authority)
    if scheme or has_authority:
        path = normalize_path(path)

    query, fragment = parts["query"], parts["fragment"]
    return ParsedURL(
        scheme,
        userinfo,
        hostname,
        port,
        quote(path, safe=PATH_SAFE),
        "" if query is None else quote(query, safe=QUERY_SAFE),
        None if fragment is None else quote(fragment, safe=FRAG_SAFE),
    )


def encode_host(host: str) -> str:
    """
    Validate and normalize a host: IP literals are checked, names are
    lower-cased, non-ASCII names are IDNA encoded. IPv6 brackets are dropped.
    """
    if not host:
        return ""

    if IPv6_STYLE_HOSTNAME.match(host):
        literal = host[1:-1]
        try:
            ipaddress.IPv6Address(literal)
        except ipaddress.AddressValueError:
            raise InvalidURL(f"Invalid IPv6 address: {host!r}")
        return literal

    if IPv4_STYLE_HOSTNAME.match(host):
        try:
            ipaddress.IPv4Address(host)
        except ipaddress.AddressValueError:
            raise InvalidURL(f"Invalid IPv4 address: {host!r}")
        return host

    host = host.lower()
    if host.isascii():
        return quote(host, safe=HOST_SAFE)
    try:
        return idna.encode(host).decode("ascii")
    except idna.IDNAError:
        raise InvalidURL(f"Invalid IDNA hostname: {host!r}")


def normalize_port(port: str | int | None, scheme: str) -> int | None:
    """
    Parse a port, returning `None` when it is absent or the scheme default.
    """
    if port is None or port == "":
        return None
    try:
        number = int(port)
    except ValueError:
        raise InvalidURL(f"Invalid port: {port!r}")
    if not 0 <= number <= 65535:
        raise InvalidURL(f"Invalid port: {port!r}")
    return None if number == DEFAULT_PORTS.get(scheme) else number


def validate_path(path: str, has_scheme: bool, has_authority: bool) -> None:
    if has_authority:
        if path and not path.startswith("/"):
            raise InvalidURL("For absolute URLs, path must be empty or begin with '/'")
    elif not has_scheme:
        for prefix in ("//", ":"):
            if path.startswith(prefix):
                raise InvalidURL(f"Relative URLs cannot have a path starting with {prefix!r}")


def normalize_path(path: str) -> str:
    """
    Remove `.` and `..` segments from an absolute path.

    >>> normalize_path("/a/./b/../c")
    '/a/c'
    """
    segments = path.split("/")
    if "." not in segments and ".." not in segments:
        return path
    output: list[str] = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            # Never pop the leading empty segment of an absolute path.
            if len(output) > 1 or (output and output[0]):
                output.pop()
            continue
        output.append(segment)
    return "/".join(output)


def _escape(text: str, allowed: str) -> str:
    return "".join(
        char if char in allowed else "".join(f"%{byte:02X}" for byte in char.encode("utf-8"))
        for char in text
    )


def quote(string: str, safe: str) -> str:
    """
    Percent-encode `string`, keeping any existing `%XX` escapes as they are.
    """
    allowed = UNRESERVED_CHARACTERS + safe
    # Splitting on a capturing group puts the escapes at odd indexes.
    parts = PERCENT_ENCODED_REGEX.split(string)
    return "".join(part if index % 2 else _escape(part, allowed) for index, part in enumerate(parts))
