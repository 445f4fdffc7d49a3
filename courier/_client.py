from __future__ import annotations

import logging
import threading
import typing
from types import TracebackType

from ._config import Config
from ._request import Callback, Request
from ._transports.base import BaseAgent
from ._transports.default import HTTPCoreAgent

__all__ = ["Client"]

logger = logging.getLogger("courier")

# GET/HEAD/OPTIONS data goes to the query string; the other verbs send it.
QUERY_DATA_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class Client:
    """
    A request factory sharing one `Config` and one default agent.

    Usage:

    ```python
    >>> with courier.Client(courier.Config(timeout=5.0)) as client:
    ...     response = client.get("https://example.org").end()
    ```

    The client closes only the agent it created itself; an agent passed in
    through `Config.agent` belongs to the caller.
    """

    def __init__(self, config: Config | None = None, **kwargs: typing.Any) -> None:
        if config is None:
            config = Config(**kwargs)
        elif kwargs:
            config = config.replace(**kwargs)
        self.config = config
        self._agent: BaseAgent | None = None
        self._lock = threading.Lock()

    @property
    def agent(self) -> BaseAgent:
        """
        The agent used by requests that do not choose one with `.agent()`.
        """
        if self.config.agent is not None:
            return self.config.agent
        with self._lock:
            if self._agent is None:
                self._agent = HTTPCoreAgent()
                logger.debug("Created default agent %r", self._agent)
            return self._agent

    def request(
        self,
        method: str,
        url: typing.Any = None,
        data: typing.Any = None,
        callback: Callback | None = None,
    ) -> Request:
        if callable(data) and callback is None:
            data, callback = None, data
        req = Request(method, url, config=self.config, client=self)
        if data is not None:
            if req.method in QUERY_DATA_METHODS:
                req.query(data)
            else:
                req.send(data)
        if callback is not None:
            req.end(callback)
        return req

    def get(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("GET", url, data, callback)

    def head(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("HEAD", url, data, callback)

    def options(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("OPTIONS", url, data, callback)

    def delete(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("DELETE", url, data, callback)

    def post(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("POST", url, data, callback)

    def put(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("PUT", url, data, callback)

    def patch(self, url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
        return self.request("PATCH", url, data, callback)

    def close(self) -> None:
        with self._lock:
            agent, self._agent = self._agent, None
        if agent is not None:
            agent.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()
