"""
Unit tests for the read fallback chain.

Tests that only an unavailable source moves a read on, and that a
configured store's empty answer is never masked by a later source.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.integrations.exceptions import StoreError, StoreUnavailableError
from src.services.read_chain import Found, NotFound, ReadChain, SourceUnavailable


def make_source(name: str, result=None, error: Exception = None) -> MagicMock:
    source = MagicMock()
    source.name = name
    source.read = AsyncMock(return_value=result, side_effect=error)
    return source


class TestLookupOne:
    """Test single-record lookups."""

    @pytest.mark.asyncio
    async def test_found_in_first_source(self):
        first = make_source("document", result="record")
        second = make_source("relational", result="other")

        result = await ReadChain([first, second]).lookup_one(lambda s: s.read())

        assert isinstance(result, Found)
        assert result.value == "record"
        assert result.source == "document"
        assert result.degraded is False
        second.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_found_does_not_fall_back(self):
        first = make_source("document", result=None)
        second = make_source("seed", result="seed record")

        result = await ReadChain([first, second]).lookup_one(lambda s: s.read())

        assert isinstance(result, NotFound)
        assert result.value is None
        second.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_falls_back(self):
        first = make_source("document", error=StoreUnavailableError("down"))
        second = make_source("relational", result="mirror")

        result = await ReadChain([first, second]).lookup_one(lambda s: s.read())

        assert isinstance(result, Found)
        assert result.value == "mirror"
        assert result.source == "relational"
        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_all_unavailable(self):
        first = make_source("document", error=StoreUnavailableError("down"))
        second = make_source("relational", error=StoreUnavailableError("refused"))

        result = await ReadChain([first, second]).lookup_one(lambda s: s.read())

        assert isinstance(result, SourceUnavailable)
        assert result.value is None
        assert result.source == "relational"
        assert result.reason == "refused"

    @pytest.mark.asyncio
    async def test_other_store_errors_propagate(self):
        first = make_source("document", error=StoreError("corrupt document"))
        second = make_source("relational", result="mirror")

        with pytest.raises(StoreError):
            await ReadChain([first, second]).lookup_one(lambda s: s.read())
        second.read.assert_not_called()


class TestLookupMany:
    """Test list lookups."""

    @pytest.mark.asyncio
    async def test_empty_list_is_an_answer(self):
        first = make_source("document", result=[])
        seed = make_source("seed", result=["seed event"])

        result = await ReadChain([first, seed]).lookup_many(lambda s: s.read())

        assert isinstance(result, Found)
        assert result.value == []
        seed.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_seed_served_when_stores_unavailable(self):
        first = make_source("document", error=StoreUnavailableError("down"))
        second = make_source("relational", error=StoreUnavailableError("down"))
        seed = make_source("seed", result=("a", "b"))

        result = await ReadChain([first, second, seed]).lookup_many(lambda s: s.read())

        assert result.value == ["a", "b"]
        assert result.source == "seed"
        assert result.degraded is True


class TestReadChainConstruction:
    def test_requires_a_source(self):
        with pytest.raises(ValueError):
            ReadChain([])

    def test_reordered_is_stable(self):
        a = make_source("a")
        b = make_source("b")
        c = make_source("c")

        chain = ReadChain([a, b, c]).reordered(lambda s: 0 if s.name == "c" else 1)

        assert [s.name for s in chain.sources] == ["c", "a", "b"]
