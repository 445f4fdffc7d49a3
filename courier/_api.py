from __future__ import annotations

import threading
import typing

from ._client import Client
from ._request import Callback, Request

__all__ = [
    "delete",
    "get",
    "get_default_client",
    "head",
    "options",
    "patch",
    "post",
    "put",
    "request",
]

_default_client: Client | None = None
_default_client_lock = threading.Lock()


def get_default_client() -> Client:
    """
    The `Client` behind the module level verb functions, created on first use.
    """
    global _default_client
    with _default_client_lock:
        if _default_client is None:
            _default_client = Client()
        return _default_client


def request(
    method: str,
    url: typing.Any = None,
    data: typing.Any = None,
    callback: Callback | None = None,
) -> Request:
    """
    Build a request.

    **Parameters:**

    * **method** - HTTP method for the new `Request` object: `GET`, `OPTIONS`,
    `HEAD`, `POST`, `PUT`, `PATCH`, or `DELETE`.
    * **url** - URL for the new `Request` object: an absolute URL, a parsed
    URL, or a shorthand such as `"localhost:5000/login"` or `":5000/echo"`.
    * **data** - *(optional)* Query parameters for `GET`, `HEAD` and `OPTIONS`,
    otherwise the body passed to `.send()`.
    * **callback** - *(optional)* When given, the request is ended right away
    and `callback(err, res)` is invoked with the outcome.

    **Returns:** `Request`

    Usage:

    ```
    >>> import courier
    >>> response = courier.request("GET", "https://httpbin.org/get").end()
    >>> response
    <Response [200 OK]>
    ```
    """
    return get_default_client().request(method, url, data, callback)


def get(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build a `GET` request.

    **Parameters**: See `courier.request`.
    """
    return request("GET", url, data, callback)


def head(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build a `HEAD` request.

    **Parameters**: See `courier.request`.
    """
    return request("HEAD", url, data, callback)


def options(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build an `OPTIONS` request.

    **Parameters**: See `courier.request`.
    """
    return request("OPTIONS", url, data, callback)


def delete(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build a `DELETE` request.

    **Parameters**: See `courier.request`.
    """
    return request("DELETE", url, data, callback)


def post(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build a `POST` request.

    **Parameters**: See `courier.request`.
    """
    return request("POST", url, data, callback)


def put(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build a `PUT` request.

    **Parameters**: See `courier.request`.
    """
    return request("PUT", url, data, callback)


def patch(url: typing.Any = None, data: typing.Any = None, callback: Callback | None = None) -> Request:
    """
    Build a `PATCH` request.

    **Parameters**: See `courier.request`.
    """
    return request("PATCH", url, data, callback)
