"""
Service layer for Gatherly.

Provides the repositories and the policies they share:
- Event and calendar repositories (dual write, read fallback)
- Invitation repository (lifecycle state machine, tracking, statistics)
- Seed data served when no store can answer
- Outbound invitation email
"""

from src.services.calendar_repository import (
    CalendarRepository,
    is_valid_slug,
    normalize_slug,
)
from src.services.dual_write import (
    DualWriter,
    StepResult,
    StepStatus,
    WriteOutcome,
)
from src.services.event_repository import EventRepository
from src.services.exceptions import (
    CalendarNotFoundError,
    InvalidEmailError,
    InvalidIdentifierError,
    InvalidSlugError,
    InvalidTransitionError,
    PrimaryStoreError,
    RepositoryError,
    SlugTakenError,
    ValidationFailedError,
)
from src.services.invitation_repository import (
    BatchInvitationResult,
    ClickTrackingResult,
    CreateInvitationResult,
    InvitationPage,
    InvitationRepository,
    OpenTrackingResult,
    normalize_email,
)
from src.services.read_chain import (
    Found,
    NotFound,
    ReadChain,
    ReadResult,
    SourceUnavailable,
)
from src.services.seed import SeedDataProvider
from src.services.stats import InvitationStats
from src.services.transitions import (
    allowed_transitions,
    is_terminal,
    is_valid_transition,
)

__all__ = [
    # Repositories
    "EventRepository",
    "CalendarRepository",
    "InvitationRepository",
    # Results
    "CreateInvitationResult",
    "BatchInvitationResult",
    "InvitationPage",
    "OpenTrackingResult",
    "ClickTrackingResult",
    "InvitationStats",
    # Read fallback
    "ReadChain",
    "ReadResult",
    "Found",
    "NotFound",
    "SourceUnavailable",
    "SeedDataProvider",
    # Dual write
    "DualWriter",
    "WriteOutcome",
    "StepResult",
    "StepStatus",
    # State machine
    "is_valid_transition",
    "is_terminal",
    "allowed_transitions",
    # Helpers
    "normalize_email",
    "normalize_slug",
    "is_valid_slug",
    # Exceptions
    "RepositoryError",
    "ValidationFailedError",
    "InvalidEmailError",
    "InvalidIdentifierError",
    "InvalidSlugError",
    "InvalidTransitionError",
    "PrimaryStoreError",
    "SlugTakenError",
    "CalendarNotFoundError",
]
