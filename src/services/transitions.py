"""
Invitation status state machine.

The whole lifecycle lives in one table: delivery (pending -> sent or
bounced), engagement (opened, clicked), and a final response. Engagement
steps may be skipped since tracking pixels are often blocked; accepted,
declined and bounced are terminal.
"""

from src.integrations.base import InvitationStatus

S = InvitationStatus

TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    S.PENDING: frozenset({S.SENT, S.BOUNCED}),
    S.SENT: frozenset({S.OPENED, S.CLICKED, S.ACCEPTED, S.DECLINED, S.BOUNCED}),
    S.OPENED: frozenset({S.CLICKED, S.ACCEPTED, S.DECLINED}),
    S.CLICKED: frozenset({S.ACCEPTED, S.DECLINED}),
    S.ACCEPTED: frozenset(),
    S.DECLINED: frozenset(),
    S.BOUNCED: frozenset(),
}

# Timestamp column stamped the first time an invitation enters a status
STATUS_TIMESTAMPS = {
    S.SENT: "sent_at",
    S.OPENED: "opened_at",
    S.CLICKED: "clicked_at",
    S.ACCEPTED: "responded_at",
    S.DECLINED: "responded_at",
}

# Earlier steps a status implies, filled in when they were never recorded.
# A click or an acceptance counts as an open, and every response was sent.
IMPLIED_TIMESTAMPS = {
    S.OPENED: ("sent_at",),
    S.CLICKED: ("sent_at", "opened_at"),
    S.ACCEPTED: ("sent_at", "opened_at"),
    S.DECLINED: ("sent_at",),
}

# Invitations that were never delivered can be withdrawn
REMOVABLE_STATUSES = (S.PENDING, S.BOUNCED)


def is_valid_transition(from_status: InvitationStatus, to_status: InvitationStatus) -> bool:
    """Check whether an invitation may move from from_status to to_status."""
    return to_status in TRANSITIONS.get(S(from_status), frozenset())


def is_terminal(status: InvitationStatus) -> bool:
    return not TRANSITIONS.get(S(status))


def allowed_transitions(status: InvitationStatus) -> list[InvitationStatus]:
    """Statuses reachable from status, in lifecycle order."""
    reachable = TRANSITIONS.get(S(status), frozenset())
    return [candidate for candidate in S if candidate in reachable]
