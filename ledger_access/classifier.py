"""
Transaction classification - application tags and fund-flow direction.

Pure functions of already-normalized fields. No network access.
"""

from typing import Any, Iterable, Optional

from ledger_access.models import Direction


DEFAULT_APP_SOURCE_TAGS = frozenset({29202152})
DEFAULT_APP_MEMO_PREFIXES = ("BitBob",)


def _as_tag(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class Classifier:
    """
    Flags transactions that belong to a known client application.

    A transaction is flagged when its source tag is known OR its memo starts
    with a known prefix. Either check alone is sufficient.
    """

    def __init__(
        self,
        source_tags: Optional[Iterable[int]] = None,
        memo_prefixes: Optional[Iterable[str]] = None,
    ) -> None:
        self._source_tags = frozenset(
            DEFAULT_APP_SOURCE_TAGS if source_tags is None else source_tags
        )
        self._memo_prefixes = tuple(
            DEFAULT_APP_MEMO_PREFIXES if memo_prefixes is None else memo_prefixes
        )

    @property
    def source_tags(self) -> frozenset[int]:
        return self._source_tags

    @property
    def memo_prefixes(self) -> tuple[str, ...]:
        return self._memo_prefixes

    def has_app_tag(self, source_tag: Any) -> bool:
        """Check a raw source tag (int or numeric string)."""
        tag = _as_tag(source_tag)
        return tag is not None and tag in self._source_tags

    def has_app_memo(self, memo: Optional[str]) -> bool:
        """Check decoded memo text for a known prefix."""
        if not memo:
            return False
        return any(memo.startswith(prefix) for prefix in self._memo_prefixes if prefix)

    def is_app_tagged(self, source_tag: Any, memo: Optional[str]) -> bool:
        """Classification flag for a transaction."""
        return self.has_app_tag(source_tag) or self.has_app_memo(memo)

    @staticmethod
    def direction(sender: str, destination: str, address: Optional[str]) -> Optional[Direction]:
        """Direction of fund flow relative to the queried address."""
        if not address:
            return None
        if sender == address and destination == address:
            return Direction.SELF
        if sender == address:
            return Direction.OUTGOING
        if destination == address:
            return Direction.INCOMING
        return Direction.UNRELATED
