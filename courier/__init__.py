# ruff: noqa: I001
from .__version__ import __description__, __title__, __version__
from ._api import *  # noqa: F403
from ._client import Client
from ._codecs import Codec, CodecRegistry
from ._config import Config
from ._events import EventEmitter
from ._exceptions import *  # noqa: F403
from ._headers import Headers
from ._materialize import MaterializerState, ResponseMaterializer
from ._query import QueryParams
from ._request import Request, WritableSink
from ._response import Response
from ._transports import *  # noqa: F403
from ._urlparse import ParsedURL, resolve
from ._utils import parse_links


_members = [
    member
    for member in list(vars().keys())
    if not member.startswith("_")
    or member in ["__description__", "__title__", "__version__"]
]

__all__ = sorted(_members, key=str.casefold)  # pyright: ignore[reportUnsupportedDunderAll]
