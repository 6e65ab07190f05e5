"""
Dual-write policy point.

Every mutation of a dual-written entity goes through DualWriter.execute:
the primary write runs first and its failure fails the operation; the
secondary write runs only after primary success, and its failure is
logged and recorded, never raised and never rolled back.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from src.integrations.exceptions import StoreError
from src.services.exceptions import PrimaryStoreError

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepResult:
    store: str
    status: StepStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.OK


@dataclass(frozen=True)
class WriteOutcome:
    """What happened to one mutation in each store."""

    operation: str
    entity: str
    entity_id: Optional[str]
    primary: StepResult
    secondary: StepResult
    result: Any = field(default=None, compare=False)

    @property
    def mirrored(self) -> bool:
        return self.primary.ok and self.secondary.ok


OutcomeObserver = Callable[[WriteOutcome], None]


class DualWriter:
    """
    Runs paired primary/secondary writes with one failure policy.

    Args:
        primary_name: Name of the system-of-record store (for outcomes/logs)
        secondary_name: Name of the mirror store
        on_outcome: Optional observer called with every WriteOutcome
    """

    def __init__(
        self,
        primary_name: str,
        secondary_name: str,
        on_outcome: Optional[OutcomeObserver] = None,
    ):
        self.primary_name = primary_name
        self.secondary_name = secondary_name
        self._on_outcome = on_outcome

    async def execute(
        self,
        operation: str,
        entity: str,
        entity_id: Optional[str],
        primary: Callable[[], Awaitable[Any]],
        secondary: Optional[Callable[[Any], Awaitable[Any]]] = None,
    ) -> WriteOutcome:
        """
        Run one mutation against both stores.

        Args:
            operation: create, update or delete (for logs and errors)
            entity: Entity kind, e.g. "event"
            entity_id: Record ID if known
            primary: Coroutine function performing the primary write
            secondary: Coroutine function taking the primary result and
                performing the mirror write; None skips the mirror

        Returns:
            WriteOutcome whose result is the primary write's return value

        Raises:
            PrimaryStoreError: If the primary write raised a StoreError
        """
        try:
            result = await primary()
        except StoreError as e:
            logger.error(
                f"Primary {self.primary_name} {operation} of {entity} {entity_id or ''} "
                f"failed: {e.message}"
            )
            raise PrimaryStoreError(operation, entity, entity_id, original_error=e) from e

        primary_step = StepResult(self.primary_name, StepStatus.OK)

        if secondary is None:
            secondary_step = StepResult(self.secondary_name, StepStatus.SKIPPED)
        else:
            try:
                await secondary(result)
                secondary_step = StepResult(self.secondary_name, StepStatus.OK)
            except Exception as e:
                # Mirror failures are recorded here and never reach the caller
                logger.warning(
                    f"Secondary {self.secondary_name} {operation} of {entity} "
                    f"{entity_id or ''} failed: {e}"
                )
                secondary_step = StepResult(self.secondary_name, StepStatus.FAILED, error=str(e))

        outcome = WriteOutcome(
            operation=operation,
            entity=entity,
            entity_id=entity_id,
            primary=primary_step,
            secondary=secondary_step,
            result=result,
        )
        logger.debug(
            f"{entity} {operation} {entity_id or ''}: primary={primary_step.status.value} "
            f"secondary={secondary_step.status.value}"
        )
        if self._on_outcome is not None:
            self._on_outcome(outcome)
        return outcome
