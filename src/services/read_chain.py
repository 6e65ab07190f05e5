"""
Read fallback across an ordered list of sources.

Each source answers with a tagged result:
- Found: the source answered (possibly with an empty list)
- NotFound: the source answered and has no such record
- SourceUnavailable: the source could not answer (unreachable or unconfigured)

Only SourceUnavailable moves the read on to the next source. A configured
store that has no row, or returns an empty list, is the answer; seed data
never masks it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar, Union

from src.integrations.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T
    source: str
    degraded: bool = False


@dataclass(frozen=True)
class NotFound:
    source: str
    degraded: bool = False

    value: None = None


@dataclass(frozen=True)
class SourceUnavailable:
    """No source could answer; reason describes the last failure."""

    source: str
    reason: str

    value: None = None
    degraded: bool = True


ReadResult = Union[Found[T], NotFound, SourceUnavailable]


class ReadChain(Generic[S]):
    """
    Ordered chain of read sources.

    degraded is set on the answer when it came from a source other than
    the first one in the chain.
    """

    def __init__(self, sources: Sequence[S]):
        if not sources:
            raise ValueError("ReadChain requires at least one source")
        self._sources = list(sources)

    @property
    def sources(self) -> list[S]:
        return list(self._sources)

    def reordered(self, key: Callable[[S], Any]) -> "ReadChain[S]":
        """Return a chain with sources stably sorted by key."""
        return ReadChain(sorted(self._sources, key=key))

    async def lookup_one(
        self,
        read: Callable[[S], Awaitable[Optional[T]]],
        description: str = "record",
    ) -> ReadResult:
        """
        Look up a single record.

        Args:
            read: Coroutine function taking a source and returning the record or None
            description: Used in log messages

        Returns:
            Found, NotFound, or SourceUnavailable if every source was unavailable
        """
        return await self._lookup(read, description, is_list=False)

    async def lookup_many(
        self,
        read: Callable[[S], Awaitable[Sequence[T]]],
        description: str = "records",
    ) -> ReadResult:
        """Look up a list of records; an empty list is a Found answer."""
        return await self._lookup(read, description, is_list=True)

    async def _lookup(self, read, description: str, is_list: bool) -> ReadResult:
        last: Optional[SourceUnavailable] = None
        for position, source in enumerate(self._sources):
            name = getattr(source, "name", type(source).__name__)
            try:
                value = await read(source)
            except StoreUnavailableError as e:
                logger.warning(f"Source {name} unavailable for {description}: {e.message}")
                last = SourceUnavailable(source=name, reason=e.message)
                continue

            degraded = position > 0
            if degraded:
                logger.info(f"Served {description} from fallback source {name}")
            if is_list:
                return Found(value=list(value), source=name, degraded=degraded)
            if value is None:
                return NotFound(source=name, degraded=degraded)
            return Found(value=value, source=name, degraded=degraded)

        logger.error(f"No source could serve {description}")
        return last
