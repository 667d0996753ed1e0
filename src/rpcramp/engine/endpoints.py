"""Target endpoint selection."""

from __future__ import annotations

import itertools
import random
from typing import TYPE_CHECKING

from rpcramp._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rpcramp.engine.config import EndpointStrategy


def parse_endpoints(values: Iterable[str]) -> tuple[str, ...]:
    """Flatten repeated and comma-separated URL options.

    Example::

        parse_endpoints(["http://a:8545,http://b:8545", "http://c:8545"])
        # ('http://a:8545', 'http://b:8545', 'http://c:8545')
    """
    urls: list[str] = []
    for value in values:
        urls.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(urls)


class EndpointSet:
    """One or more target URLs.

    With the default ``random`` strategy every request picks a target
    independently and uniformly at random. ``round-robin`` cycles through
    the targets in order instead, which evens out per-endpoint load.

    Args:
        urls: Target URLs. Must not be empty.
        strategy: ``"random"`` or ``"round-robin"``.
        rng: Random generator used by the ``random`` strategy.

    Raises:
        ConfigError: If *urls* is empty or the strategy is unknown.
    """

    def __init__(
        self,
        urls: Iterable[str],
        strategy: EndpointStrategy = "random",
        rng: random.Random | None = None,
    ) -> None:
        self.urls = tuple(urls)
        if not self.urls:
            msg = "At least one endpoint URL is required"
            raise ConfigError(msg)
        if strategy not in ("random", "round-robin"):
            msg = f"Unknown endpoint strategy: {strategy!r}"
            raise ConfigError(msg)
        self.strategy = strategy
        self._rng = rng or random.Random()  # noqa: S311
        self._cycle = itertools.cycle(self.urls)

    def choose(self) -> str:
        """Return the target for the next request."""
        if len(self.urls) == 1:
            return self.urls[0]
        if self.strategy == "round-robin":
            return next(self._cycle)
        return self._rng.choice(self.urls)

    def __len__(self) -> int:
        return len(self.urls)

    def describe(self) -> str:
        return f"{len(self.urls)} endpoint(s), {self.strategy}"
