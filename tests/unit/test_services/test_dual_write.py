"""
Unit tests for the dual-write policy.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.integrations.exceptions import StoreConflictError, StoreUnavailableError
from src.services.dual_write import DualWriter, StepStatus
from src.services.exceptions import PrimaryStoreError


@pytest.fixture
def writer() -> DualWriter:
    return DualWriter("document", "relational")


class TestDualWriter:
    """Test DualWriter.execute."""

    @pytest.mark.asyncio
    async def test_both_succeed(self, writer):
        primary = AsyncMock(return_value="stored")
        secondary = AsyncMock()

        outcome = await writer.execute("create", "event", "e1", primary, secondary)

        assert outcome.result == "stored"
        assert outcome.mirrored is True
        secondary.assert_awaited_once_with("stored")

    @pytest.mark.asyncio
    async def test_primary_failure_skips_secondary(self, writer):
        primary = AsyncMock(side_effect=StoreUnavailableError("document store down"))
        secondary = AsyncMock()

        with pytest.raises(PrimaryStoreError) as exc_info:
            await writer.execute("create", "event", "e1", primary, secondary)

        assert isinstance(exc_info.value.original_error, StoreUnavailableError)
        assert exc_info.value.__cause__ is exc_info.value.original_error
        assert exc_info.value.operation == "create"
        secondary.assert_not_called()

    @pytest.mark.asyncio
    async def test_primary_conflict_is_kept_as_cause(self, writer):
        conflict = StoreConflictError("taken", field="slug")
        primary = AsyncMock(side_effect=conflict)

        with pytest.raises(PrimaryStoreError) as exc_info:
            await writer.execute("create", "calendar", "c1", primary)

        assert exc_info.value.original_error is conflict

    @pytest.mark.asyncio
    async def test_secondary_failure_is_recorded_not_raised(self, writer):
        primary = AsyncMock(return_value=True)
        secondary = AsyncMock(side_effect=StoreUnavailableError("relational down"))

        outcome = await writer.execute("delete", "event", "e1", primary, secondary)

        assert outcome.result is True
        assert outcome.primary.ok
        assert outcome.secondary.status == StepStatus.FAILED
        assert "relational down" in outcome.secondary.error
        assert outcome.mirrored is False

    @pytest.mark.asyncio
    async def test_no_secondary_is_skipped(self, writer):
        outcome = await writer.execute("update", "event", "e1", AsyncMock(return_value=None))

        assert outcome.secondary.status == StepStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_observer_receives_outcome(self):
        observer = MagicMock()
        writer = DualWriter("document", "relational", on_outcome=observer)

        outcome = await writer.execute("create", "event", "e1", AsyncMock(return_value=1))

        observer.assert_called_once_with(outcome)
