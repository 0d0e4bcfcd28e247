"""
Ledger Sessions - one open connection to exactly one ledger node.

Two transports are supported:
- WebSocket, through the xrpl-py async websocket client
- JSON-RPC over HTTP, through aiohttp

Both expose request(command, **params) returning the reply's `result`
body, and an idempotent close().
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

import aiohttp
from xrpl.asyncio.clients import AsyncWebsocketClient
from xrpl.models.requests import AccountInfo, AccountTx, Tx

from ledger_access.exceptions import EndpointConnectionError, LedgerRequestError
from ledger_access.models import Endpoint, TransportKind


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 10.0

REQUEST_MODELS = {
    "account_info": AccountInfo,
    "account_tx": AccountTx,
    "tx": Tx,
}


def _raise_for_error(result: Any, endpoint: Endpoint, command: str) -> dict[str, Any]:
    """Return the result body or raise the node's error as LedgerRequestError."""
    if not isinstance(result, dict):
        raise LedgerRequestError(
            message=f"Unexpected {command} reply type {type(result).__name__}",
            endpoint=endpoint.uri,
            command=command,
        )
    if result.get("status") == "error" or "error" in result:
        error_code = result.get("error")
        raise LedgerRequestError(
            message=result.get("error_message") or f"Node error: {error_code}",
            endpoint=endpoint.uri,
            command=command,
            error_code=error_code,
        )
    return result


class LedgerSession(ABC):
    """An open connection to one endpoint, owned by a single query."""

    def __init__(self, endpoint: Endpoint, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._closed = False

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def open(self) -> None:
        """
        Establish the connection.

        Raises:
            EndpointConnectionError: If the node cannot be reached. Partially
                opened resources are released before raising.
        """
        pass

    @abstractmethod
    async def request(self, command: str, **params: Any) -> dict[str, Any]:
        """
        Issue one request and return the reply's result body.

        Raises:
            LedgerRequestError: On transport failure or a node error reply
        """
        pass

    @abstractmethod
    async def _release(self) -> None:
        """Release transport resources."""
        pass

    async def close(self) -> None:
        """Close the session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._release()
        except Exception as e:
            logger.warning(f"[session] Error closing {self._endpoint.uri}: {e}")
        logger.debug(f"[session] Closed {self._endpoint.uri}")

    async def __aenter__(self) -> "LedgerSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(endpoint={self._endpoint.uri}, closed={self._closed})>"


class WebsocketSession(LedgerSession):
    """Session over a websocket endpoint."""

    def __init__(self, endpoint: Endpoint, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(endpoint, timeout)
        self._client: Optional[AsyncWebsocketClient] = None

    async def open(self) -> None:
        client = AsyncWebsocketClient(self._endpoint.uri)
        try:
            await asyncio.wait_for(client.open(), timeout=self._timeout)
        except Exception as e:
            try:
                await client.close()
            except Exception:
                logger.debug(f"[session] Partial websocket to {self._endpoint.uri} already gone")
            raise EndpointConnectionError(
                message=f"Websocket connect failed: {e}",
                endpoint=self._endpoint.uri,
                original_error=e,
            )
        self._client = client

    async def request(self, command: str, **params: Any) -> dict[str, Any]:
        if self._client is None or self._closed:
            raise LedgerRequestError(
                "Session is not open", endpoint=self._endpoint.uri, command=command
            )
        model = REQUEST_MODELS.get(command)
        if model is None:
            raise LedgerRequestError(
                f"Unsupported command {command!r}", endpoint=self._endpoint.uri, command=command
            )

        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self._client.request(model(**params)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise LedgerRequestError(
                message=f"{command} timed out after {self._timeout}s",
                endpoint=self._endpoint.uri,
                command=command,
                original_error=e,
            )
        except Exception as e:
            raise LedgerRequestError(
                message=f"{command} failed: {e}",
                endpoint=self._endpoint.uri,
                command=command,
                original_error=e,
            )

        latency_ms = (time.time() - start_time) * 1000
        logger.debug(f"[session] {command} via {self._endpoint.uri} in {latency_ms:.1f}ms")
        return _raise_for_error(response.result, self._endpoint, command)

    async def _release(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            if client.is_open():
                await client.close()


class JsonRpcSession(LedgerSession):
    """Session over an HTTP JSON-RPC endpoint."""

    def __init__(self, endpoint: Endpoint, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(endpoint, timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": "LedgerAccess/1.0",
        }

    async def open(self) -> None:
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._timeout),
            headers=self._get_default_headers(),
        )
        try:
            # HTTP has no handshake; ping proves the node answers
            await self._post("ping", {})
        except Exception as e:
            await self._release()
            raise EndpointConnectionError(
                message=f"JSON-RPC endpoint unreachable: {e}",
                endpoint=self._endpoint.uri,
                original_error=e,
            )

    async def request(self, command: str, **params: Any) -> dict[str, Any]:
        if self._session is None or self._closed:
            raise LedgerRequestError(
                "Session is not open", endpoint=self._endpoint.uri, command=command
            )
        return await self._post(command, params)

    async def _post(self, command: str, params: dict[str, Any]) -> dict[str, Any]:
        payload = {"method": command, "params": [params]}
        start_time = time.time()
        try:
            async with self._session.post(self._endpoint.uri, json=payload) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise LedgerRequestError(
                        message=f"HTTP {response.status}",
                        endpoint=self._endpoint.uri,
                        command=command,
                        context={"response_body": body[:500]},
                    )
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise LedgerRequestError(
                message=f"Connection error: {e}",
                endpoint=self._endpoint.uri,
                command=command,
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise LedgerRequestError(
                message=f"{command} timed out after {self._timeout}s",
                endpoint=self._endpoint.uri,
                command=command,
                original_error=e,
            )

        latency_ms = (time.time() - start_time) * 1000
        logger.debug(f"[session] {command} via {self._endpoint.uri} in {latency_ms:.1f}ms")

        result = data.get("result") if isinstance(data, dict) else None
        return _raise_for_error(result, self._endpoint, command)

    async def _release(self) -> None:
        if self._session is not None:
            session, self._session = self._session, None
            if not session.closed:
                await session.close()


SessionFactory = Callable[[Endpoint], Awaitable[LedgerSession]]

SESSION_CLASSES = {
    TransportKind.WEBSOCKET: WebsocketSession,
    TransportKind.JSON_RPC: JsonRpcSession,
}


async def open_session(endpoint: Endpoint, timeout: float = DEFAULT_TIMEOUT) -> LedgerSession:
    """Open a session on an endpoint using its transport."""
    session = SESSION_CLASSES[endpoint.transport](endpoint, timeout=timeout)
    await session.open()
    return session
