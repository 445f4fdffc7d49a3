from __future__ import annotations

import dataclasses
import typing
from collections.abc import Mapping

from .__version__ import __version__
from ._codecs import CodecRegistry
from ._headers import Headers
from ._transports.base import BaseAgent

__all__ = ["Config", "DEFAULT_USER_AGENT"]

DEFAULT_USER_AGENT = f"courier/{__version__}"
DEFAULT_ACCEPT = "*/*"


@dataclasses.dataclass(frozen=True)
class Config:
    """
    Defaults applied to every request built from a `Client`.

    Use `dataclasses.replace()` (or `Config.replace()`) to derive variants.
    Setting `user_agent` or `accept` to `None` sends no such default header.
    """

    user_agent: str | None = DEFAULT_USER_AGENT
    accept: str | None = DEFAULT_ACCEPT
    headers: Mapping[str, str] = dataclasses.field(default_factory=dict)
    timeout: float | None = None
    agent: BaseAgent | None = None
    codecs: CodecRegistry = dataclasses.field(default_factory=CodecRegistry.with_defaults)

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive or None, got {self.timeout!r}")

    def replace(self, **changes: typing.Any) -> Config:
        return dataclasses.replace(self, **changes)

    def default_headers(self) -> Headers:
        headers = Headers(self.headers)
        defaults: dict[str, str] = {}
        if self.user_agent is not None:
            defaults["User-Agent"] = self.user_agent
        if self.accept is not None:
            defaults["Accept"] = self.accept
        return headers.merge(defaults)
