from .base import *
from .default import *
from .mock import *

__all__ = [
    "BaseAgent",
    "BaseByteStream",
    "ByteStream",
    "HTTPCoreAgent",
    "MockAgent",
    "MockRequest",
    "MockResponse",
    "ResponseHead",
]
