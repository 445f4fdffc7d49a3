from __future__ import annotations

import codecs
import typing
from http import HTTPStatus
from types import TracebackType

from ._events import EventEmitter
from ._exceptions import HTTPStatusError, RequestError, StateError
from ._headers import Headers
from ._transports.base import BaseByteStream
from ._utils import get_charset, normalize_mime, parse_links

if typing.TYPE_CHECKING:
    from ._request import Request

__all__ = ["Response"]

REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 305, 307, 308})


def _reason_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class Response(EventEmitter):
    """
    The result of executing a `Request`.

    A buffered response carries its decoded `text` and `body`. A streamed
    response leaves the body on the wire; read it with `iter_bytes()`,
    `iter_text()`, `read()`, or the `data`/`end` events after `resume()`.
    """

    def __init__(
        self,
        status: int,
        headers: Headers | typing.Sequence[tuple[str, str]] | None = None,
        *,
        request: Request | None = None,
        buffered: bool = True,
        content: bytes | None = None,
        text: str | None = None,
        body: typing.Any = None,
        stream: BaseByteStream | None = None,
        reason_phrase: str = "",
        http_version: str = "HTTP/1.1",
    ) -> None:
        super().__init__()
        self._status = int(status)
        self._headers = headers if isinstance(headers, Headers) else Headers(headers or [])
        self._request = request
        self._buffered = buffered
        self._content = content
        self._text = text
        self._body = body
        self._stream = stream
        self._reason_phrase = reason_phrase or _reason_phrase(self._status)
        self._http_version = http_version
        self._links = parse_links(self._headers.get("link"))
        self._encoding: str | None = None
        self._is_stream_consumed = stream is None
        self._is_closed = stream is None

    # Status

    @property
    def status(self) -> int:
        return self._status

    @property
    def status_code(self) -> int:
        return self._status

    @property
    def status_type(self) -> int:
        return self._status // 100

    @property
    def reason_phrase(self) -> str:
        return self._reason_phrase

    @property
    def http_version(self) -> str:
        return self._http_version

    @property
    def info(self) -> bool:
        return self.status_type == 1

    @property
    def ok(self) -> bool:
        return self.status_type == 2

    @property
    def client_error(self) -> bool:
        return self.status_type == 4

    @property
    def server_error(self) -> bool:
        return self.status_type == 5

    @property
    def redirect(self) -> bool:
        return self._status in REDIRECT_STATUS_CODES

    @property
    def accepted(self) -> bool:
        return self._status == 202

    @property
    def no_content(self) -> bool:
        return self._status in (204, 1223)

    @property
    def bad_request(self) -> bool:
        return self._status == 400

    @property
    def unauthorized(self) -> bool:
        return self._status == 401

    @property
    def forbidden(self) -> bool:
        return self._status == 403

    @property
    def not_found(self) -> bool:
        return self._status == 404

    @property
    def not_acceptable(self) -> bool:
        return self._status == 406

    @property
    def error(self) -> HTTPStatusError | typing.Literal[False]:
        """
        An `HTTPStatusError` describing a 4xx/5xx response, otherwise `False`.
        """
        if not (self.client_error or self.server_error):
            return False
        request = self._request
        if request is None:
            message = f"{self._status} {self._reason_phrase}"
        else:
            message = f"cannot {request.method} {request.parsed_url().path} ({self._status})"
        return HTTPStatusError(message, request=request, response=self)  # type: ignore[arg-type]

    def raise_for_status(self) -> Response:
        error = self.error
        if error:
            raise error
        return self

    # Head

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def header(self) -> Headers:
        return self._headers

    def get(self, field: str) -> str | None:
        return self._headers.get(field)

    @property
    def type(self) -> str:
        return normalize_mime(self._headers.get("content-type"))

    @property
    def charset(self) -> str | None:
        return get_charset(self._headers.get("content-type"))

    @property
    def links(self) -> dict[str, str]:
        return dict(self._links)

    @property
    def request(self) -> Request:
        if self._request is None:
            raise RuntimeError("The request instance has not been set on this response.")
        return self._request

    # Body

    @property
    def buffered(self) -> bool:
        return self._buffered

    @property
    def text(self) -> str | None:
        return self._text

    @property
    def body(self) -> typing.Any:
        return self._body

    @property
    def content(self) -> bytes | None:
        return self._content

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    @property
    def is_stream_consumed(self) -> bool:
        return self._is_stream_consumed

    def set_encoding(self, encoding: str) -> Response:
        """
        Decode chunks to `str` with `encoding` before emitting `data` events.
        """
        codecs.lookup(encoding)
        self._encoding = encoding
        return self

    def iter_bytes(self) -> typing.Iterator[bytes]:
        if self._buffered:
            if self._content:
                yield self._content
            return
        if self._is_stream_consumed:
            raise StateError("The response stream has already been consumed.")
        assert self._stream is not None
        self._is_stream_consumed = True
        try:
            for chunk in self._stream:
                if chunk:
                    yield chunk
        except RequestError as exc:
            if self._request is not None:
                exc.request = self._request
            exc.response = self
            raise
        finally:
            self.close()

    def iter_text(self, encoding: str | None = None) -> typing.Iterator[str]:
        decoder = codecs.getincrementaldecoder(
            encoding or self._encoding or self.charset or "utf-8"
        )(errors="replace")
        for chunk in self.iter_bytes():
            text = decoder.decode(chunk)
            if text:
                yield text
        text = decoder.decode(b"", final=True)
        if text:
            yield text

    def read(self) -> bytes:
        return b"".join(self.iter_bytes())

    def resume(self) -> Response:
        """
        Drain the stream, emitting `data` for each chunk then `end`.

        Chunks are `bytes` unless `set_encoding()` was called. A failure is
        emitted as `error` and raised when nothing listens for it.
        """
        chunks: typing.Iterator[typing.Any]
        chunks = self.iter_text() if self._encoding else self.iter_bytes()
        try:
            for chunk in chunks:
                self.emit("data", chunk)
        except RequestError as exc:
            if not self.emit("error", exc):
                raise
            return self
        self.emit("end")
        return self

    def close(self) -> None:
        if not self._is_closed:
            self._is_closed = True
            if self._stream is not None:
                self._stream.close()

    def __enter__(self) -> Response:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()

    def to_json(self) -> dict[str, typing.Any]:
        return {
            "header": self._headers.to_dict(),
            "req": self.request.to_json() if self._request is not None else None,
            "status": self._status,
            "text": self._text,
        }

    def __repr__(self) -> str:
        return f"<Response [{self._status} {self._reason_phrase}]>"
