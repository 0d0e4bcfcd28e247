"""
Connection Manager - failover across the endpoint pool.

Features:
- Tries endpoints in pool traversal order, first success wins
- Repeats the traversal after a fixed delay, up to max_passes
- Scoped sessions that are closed exactly once on every exit path
"""

import asyncio
import functools
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ledger_access.exceptions import NoReachableEndpointError
from ledger_access.pool import EndpointPool
from ledger_access.sessions import DEFAULT_TIMEOUT, LedgerSession, SessionFactory, open_session


logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Opens sessions against the first reachable endpoint.

    Usage:
        manager = ConnectionManager(EndpointPool(["wss://s1.ripple.com"]))

        async with manager.session() as session:
            result = await session.request("account_info", account=address)

        # Raises NoReachableEndpointError when every endpoint fails
    """

    DEFAULT_MAX_PASSES = 2
    DEFAULT_RETRY_DELAY = 1.0

    def __init__(
        self,
        pool: EndpointPool,
        session_factory: Optional[SessionFactory] = None,
        max_passes: int = DEFAULT_MAX_PASSES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if max_passes < 1:
            raise ValueError("max_passes must be >= 1")
        self._pool = pool
        self._session_factory = session_factory or functools.partial(open_session, timeout=timeout)
        self._max_passes = max_passes
        self._retry_delay = retry_delay
        self._active_sessions = 0

    @property
    def pool(self) -> EndpointPool:
        return self._pool

    @property
    def active_sessions(self) -> int:
        """Sessions handed out by session() and not yet closed."""
        return self._active_sessions

    async def acquire_session(self) -> LedgerSession:
        """
        Open a session on the first endpoint that accepts one.

        The caller owns the returned session and must close it.

        Raises:
            NoReachableEndpointError: If every endpoint fails on every pass
        """
        attempted: list[str] = []
        last_error: Optional[Exception] = None

        for pass_number in range(1, self._max_passes + 1):
            for endpoint in self._pool.traversal():
                attempted.append(endpoint.uri)
                try:
                    session = await self._session_factory(endpoint)
                except Exception as e:
                    last_error = e
                    logger.warning(f"[connection] Failed to connect to {endpoint.uri}: {e}")
                    continue

                logger.info(f"[connection] Connected to {endpoint.uri} (pass {pass_number})")
                return session

            if pass_number < self._max_passes:
                logger.warning(
                    f"[connection] All {len(self._pool)} endpoints failed on pass "
                    f"{pass_number}/{self._max_passes}, retrying in {self._retry_delay:.1f}s"
                )
                await asyncio.sleep(self._retry_delay)

        logger.error(f"[connection] No reachable endpoint after {self._max_passes} pass(es)")
        raise NoReachableEndpointError(
            message=f"Could not connect to any of {len(self._pool)} endpoints",
            attempted_endpoints=attempted,
            passes=self._max_passes,
            original_error=last_error,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[LedgerSession]:
        """Acquire a session and close it when the block exits, however it exits."""
        session = await self.acquire_session()
        self._active_sessions += 1
        try:
            yield session
        finally:
            self._active_sessions -= 1
            await session.close()

    def __repr__(self) -> str:
        return (
            f"<ConnectionManager(endpoints={len(self._pool)}, "
            f"max_passes={self._max_passes}, active={self._active_sessions})>"
        )
