r"""
The buffer-vs-stream decision for a response body.

    PENDING --> BUFFERING --> COMPLETE
           \--> STREAMING --> COMPLETE

The disposition is chosen once, from the request's buffer preference and the
response Content-Type:

* `.buffer(True)` buffers and `.buffer(False)` streams, whatever the type.
* Otherwise the codec registered for the type decides (`Codec.buffer`):
  json, form and text/* buffer; unknown and binary types stream.

Responses that cannot carry a body (HEAD, 1xx, 204, 304) are buffered.
"""

from __future__ import annotations

import enum
import logging
import typing

from ._codecs import CodecRegistry
from ._exceptions import ParseError, RequestError, TransportError
from ._headers import Headers
from ._response import Response
from ._transports.base import ResponseHead
from ._utils import get_charset

if typing.TYPE_CHECKING:
    from ._request import Request

__all__ = ["MaterializerState", "ResponseMaterializer"]

logger = logging.getLogger("courier")


class MaterializerState(enum.Enum):
    PENDING = "pending"
    BUFFERING = "buffering"
    STREAMING = "streaming"
    COMPLETE = "complete"


def has_no_body(method: str, status: int) -> bool:
    return method == "HEAD" or 100 <= status < 200 or status in (204, 304)


def decode_text(content: bytes, charset: str | None) -> str:
    try:
        return content.decode(charset or "utf-8", errors="replace")
    except LookupError:
        logger.debug("Unknown charset %r, decoding as utf-8", charset)
        return content.decode("utf-8", errors="replace")


class ResponseMaterializer:
    def __init__(
        self,
        request: Request,
        head: ResponseHead,
        codecs: CodecRegistry,
        buffer: bool | None = None,
    ) -> None:
        self.request = request
        self.head = head
        self.codecs = codecs
        self.buffer = buffer
        self.headers = Headers(head.headers)
        self.state = MaterializerState.PENDING

    def choose(self) -> MaterializerState:
        if has_no_body(self.request.method, self.head.status):
            return MaterializerState.BUFFERING
        if self.buffer is not None:
            return MaterializerState.BUFFERING if self.buffer else MaterializerState.STREAMING
        if self.codecs.should_buffer(self.headers.get("content-type")):
            return MaterializerState.BUFFERING
        return MaterializerState.STREAMING

    def materialize(self) -> Response:
        """
        Run the state machine to completion and return the `Response`.

        Raises `TransportError` (body read failed) or `ParseError` (body did
        not decode), each carrying a `Response` whose `text` and `body` are
        `None`.
        """
        if self.state is not MaterializerState.PENDING:
            raise RuntimeError(f"Cannot materialize a response in state {self.state.value!r}.")

        self.state = self.choose()
        logger.debug(
            "%s %s: %s response (content-type=%r)",
            self.request.method,
            self.request.url,
            self.state.value,
            self.headers.get("content-type"),
        )
        try:
            if self.state is MaterializerState.STREAMING:
                return self._response(buffered=False, body={}, stream=self.head.stream)
            return self._buffer()
        finally:
            self.state = MaterializerState.COMPLETE

    def _buffer(self) -> Response:
        stream = self.head.stream
        try:
            content = b"".join(stream)
        except TransportError as exc:
            self._attach(exc, self._response(buffered=True))
            raise
        finally:
            stream.close()

        content_type = self.headers.get("content-type")
        try:
            body = self.codecs.decode_for(content_type, content)
        except ParseError as exc:
            self._attach(exc, self._response(buffered=True, content=content))
            raise
        text = decode_text(content, get_charset(content_type))
        return self._response(buffered=True, content=content, text=text, body=body)

    def _attach(self, exc: RequestError, response: Response) -> None:
        exc.request = self.request
        exc.response = response

    def _response(self, buffered: bool, **kwargs: typing.Any) -> Response:
        return Response(
            self.head.status,
            self.headers,
            request=self.request,
            buffered=buffered,
            reason_phrase=self.head.reason_phrase,
            http_version=self.head.http_version,
            **kwargs,
        )
