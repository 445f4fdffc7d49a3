"""
Content-type keyed body codecs.

A `Codec` turns a Python value into request bytes and response bytes back into
a Python value. The registry resolves a Content-Type to a codec in a fixed
order: exact match, structured syntax suffix (`application/vnd.api+json` uses
`application/json`), wildcard subtype (`text/*`), then the binary fallback.
"""

from __future__ import annotations

import json
import logging
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode

from ._exceptions import EncodingError, ParseError
from ._utils import normalize_mime

__all__ = [
    "BINARY",
    "Codec",
    "CodecRegistry",
    "FORM",
    "JSON",
    "TEXT",
    "TYPE_ALIASES",
    "expand_type",
]

logger = logging.getLogger("courier")

BINARY = "application/octet-stream"
FORM = "application/x-www-form-urlencoded"
JSON = "application/json"
TEXT = "text/plain"

TYPE_ALIASES = {
    "json": JSON,
    "form": FORM,
    "urlencoded": FORM,
    "html": "text/html",
    "text": TEXT,
    "xml": "application/xml",
    "binary": BINARY,
}


def expand_type(mime: str) -> str:
    """
    Resolve a shorthand such as `"json"` into a full mime type.
    """
    return TYPE_ALIASES.get(mime, mime)


@dataclass(frozen=True)
class Codec:
    """
    An encode/decode pair bound to a content type.

    `decode` is `None` for codecs whose payload has no structured value
    (text, binary). `buffer` decides whether responses of this type are
    buffered when the request did not call `.buffer()`.
    """

    encode: typing.Callable[[typing.Any], bytes]
    decode: typing.Callable[[bytes], typing.Any] | None = None
    buffer: bool = True


def _to_bytes(value: typing.Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return str(value).encode("utf-8")


def _encode_json(value: typing.Any) -> bytes:
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Cannot serialize {type(value).__name__} as JSON: {exc}") from exc


def _decode_json(content: bytes) -> typing.Any:
    if not content.strip():
        return {}
    try:
        return json.loads(content)
    except ValueError as exc:
        raise ParseError(f"Invalid JSON response body: {exc}") from exc


def _encode_form(value: typing.Any) -> bytes:
    if not isinstance(value, (Mapping, list, tuple)):
        raise EncodingError(f"Cannot form-encode {type(value).__name__}")
    try:
        return urlencode(value, doseq=True).encode("ascii")
    except TypeError as exc:
        raise EncodingError(f"Cannot form-encode {type(value).__name__}: {exc}") from exc


def _decode_form(content: bytes) -> dict[str, typing.Any]:
    try:
        pairs = parse_qsl(content.decode("utf-8"), keep_blank_values=True, strict_parsing=False)
    except UnicodeDecodeError as exc:
        raise ParseError(f"Invalid form response body: {exc}") from exc
    decoded: dict[str, typing.Any] = {}
    for key, value in pairs:
        if key not in decoded:
            decoded[key] = value
        elif isinstance(decoded[key], list):
            decoded[key].append(value)
        else:
            decoded[key] = [decoded[key], value]
    return decoded


class CodecRegistry:
    def __init__(self, codecs: typing.Mapping[str, Codec] | None = None) -> None:
        self._codecs: dict[str, Codec] = {}
        self._fallback = Codec(encode=_to_bytes, decode=None, buffer=False)
        for mime, codec in (codecs or {}).items():
            self.register(mime, codec)

    @classmethod
    def with_defaults(cls) -> CodecRegistry:
        return cls({
            JSON: Codec(encode=_encode_json, decode=_decode_json),
            FORM: Codec(encode=_encode_form, decode=_decode_form),
            "text/*": Codec(encode=_to_bytes),
            BINARY: Codec(encode=_to_bytes, buffer=False),
        })

    def register(
        self,
        mime: str,
        codec: Codec | None = None,
        *,
        encode: typing.Callable[[typing.Any], bytes] | None = None,
        decode: typing.Callable[[bytes], typing.Any] | None = None,
        buffer: bool = True,
    ) -> CodecRegistry:
        if codec is None:
            if encode is None:
                raise TypeError("register() requires a Codec or an encode function")
            codec = Codec(encode=encode, decode=decode, buffer=buffer)
        self._codecs[normalize_mime(expand_type(mime))] = codec
        return self

    def unregister(self, mime: str) -> None:
        self._codecs.pop(normalize_mime(expand_type(mime)), None)

    def match(self, mime: str | None) -> str | None:
        """
        Return the registered key that serves `mime`, or `None`.
        """
        normalized = normalize_mime(mime)
        if not normalized:
            return None
        if normalized in self._codecs:
            return normalized
        major, _, minor = normalized.partition("/")
        if "+" in minor:
            suffixed = f"application/{minor.rsplit('+', 1)[1]}"
            if suffixed in self._codecs:
                return suffixed
        wildcard = f"{major}/*"
        if wildcard in self._codecs:
            return wildcard
        return None

    def lookup(self, mime: str | None) -> Codec:
        key = self.match(mime)
        if key is None:
            logger.debug("No codec registered for %r, using binary fallback", mime)
            return self._fallback
        return self._codecs[key]

    def is_structured(self, mime: str | None) -> bool:
        key = self.match(mime)
        return key is not None and self._codecs[key].decode is not None

    def should_buffer(self, mime: str | None) -> bool:
        return self.lookup(mime).buffer

    def encode_for(self, mime: str, value: typing.Any) -> tuple[bytes, str]:
        try:
            return self.lookup(mime).encode(value), mime
        except EncodingError:
            raise
        except Exception as exc:
            raise EncodingError(f"Cannot encode {type(value).__name__} as {mime!r}: {exc}") from exc

    def decode_for(self, mime: str | None, content: bytes) -> typing.Any:
        """
        Decode `content` into a structured value, or `{}` when the matched
        codec has no structured form.
        """
        codec = self.lookup(mime)
        if codec.decode is None:
            return {}
        return codec.decode(content)

    def __contains__(self, mime: str) -> bool:
        return self.match(mime) is not None

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._codecs)

    def copy(self) -> CodecRegistry:
        return CodecRegistry(self._codecs)
