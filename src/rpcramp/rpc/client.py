"""Shared JSON-RPC-over-HTTP transport built on ``aiohttp``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import aiohttp

from rpcramp._internal.logging import get_logger

if TYPE_CHECKING:
    from rpcramp.rpc.request import JsonRpcRequest

logger = get_logger("rpc.client")


@dataclass(frozen=True)
class RpcResponse:
    """What came back from one request/response exchange.

    Attributes:
        status: HTTP status code.
        reason: HTTP reason phrase.
        body: Raw response body.
    """

    status: int
    reason: str = ""
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Return True for a 2xx status."""
        return 200 <= self.status < 300

    @property
    def body_length(self) -> int:
        """Return the body size in bytes."""
        return len(self.body)


class Transport(Protocol):
    """Anything that can perform a single JSON-RPC exchange.

    Implementations return an :class:`RpcResponse` for any HTTP response and
    raise ``aiohttp.ClientError`` or ``OSError`` for I/O failures.
    """

    async def send(self, url: str, request: JsonRpcRequest) -> RpcResponse: ...


class JsonRpcClient:
    """One reusable ``aiohttp.ClientSession`` shared by every worker.

    The session carries no timeout of its own: deadlines are enforced per
    request by the connection worker.

    Attributes:
        pool_size: Maximum simultaneous TCP connections (0 for no limit).
        headers: Headers sent with every request.
    """

    def __init__(
        self,
        *,
        pool_size: int = 100,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.pool_size = pool_size
        self.headers: dict[str, str] = {"Content-Type": "application/json"}
        self.headers.update(headers or {})
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> JsonRpcClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=self.pool_size),
            timeout=aiohttp.ClientTimeout(total=None),
            headers=self.headers,
        )
        logger.debug("HTTP session opened (pool_size=%d)", self.pool_size)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def send(self, url: str, request: JsonRpcRequest) -> RpcResponse:
        """POST *request* to *url* and read the full response body.

        Args:
            url: Target endpoint.
            request: The JSON-RPC request to send.

        Returns:
            The response status and body.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
            aiohttp.ClientError: On connection or protocol failures.
        """
        if self._session is None:
            msg = "JsonRpcClient must be used as an async context manager"
            raise RuntimeError(msg)

        logger.debug("Sending JSON-RPC request to %s: %s", url, request)
        async with self._session.post(url, json=request.to_payload()) as resp:
            body = await resp.read()
            return RpcResponse(status=resp.status, reason=resp.reason or "", body=body)
