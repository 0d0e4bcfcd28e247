"""
Endpoint Pool - fixed set of ledger nodes and their traversal order.
"""

import logging
import random
from typing import Iterable, Iterator, Optional, Union

from ledger_access.exceptions import ConfigurationError
from ledger_access.models import Endpoint


logger = logging.getLogger(__name__)


class EndpointPool:
    """
    Immutable, ordered list of ledger node endpoints.

    Duplicate URIs (ignoring case and a trailing slash) are collapsed,
    keeping the first occurrence. Each call to traversal() yields a fresh
    order: a random permutation when shuffling, the configured order
    otherwise.
    """

    def __init__(
        self,
        endpoints: Iterable[Union[str, Endpoint]],
        shuffle: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        unique: dict[str, Endpoint] = {}
        for item in endpoints:
            endpoint = item if isinstance(item, Endpoint) else Endpoint.from_uri(item)
            if endpoint.key in unique:
                logger.debug(f"[pool] Skipping duplicate endpoint {endpoint.uri}")
                continue
            unique[endpoint.key] = endpoint

        if not unique:
            raise ConfigurationError("Endpoint pool cannot be empty", config_key="endpoints")

        self._endpoints: tuple[Endpoint, ...] = tuple(unique.values())
        self._shuffle = shuffle
        self._rng = rng or random.Random()

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        """Configured endpoints in declaration order."""
        return self._endpoints

    @property
    def shuffle(self) -> bool:
        return self._shuffle

    def traversal(self) -> list[Endpoint]:
        """Order in which to try endpoints for one pass."""
        order = list(self._endpoints)
        if self._shuffle:
            self._rng.shuffle(order)
        return order

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)

    def __repr__(self) -> str:
        return f"<EndpointPool(size={len(self._endpoints)}, shuffle={self._shuffle})>"
