"""
Invitation statistics.

Rates are percentages of sent invitations rounded to one decimal place,
and zero when nothing has been sent yet.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class InvitationStats:
    total_sent: int = 0
    total_opened: int = 0
    total_clicked: int = 0
    total_accepted: int = 0
    total_declined: int = 0
    total_bounced: int = 0
    open_rate: float = 0.0
    click_rate: float = 0.0
    accept_rate: float = 0.0


def rate(count: int, total: int) -> float:
    """count as a percentage of total, one decimal place (0 if total is 0)."""
    if total <= 0:
        return 0.0
    return round(count * 100 / total, 1)


def build_stats(totals: dict[str, int]) -> InvitationStats:
    """
    Build statistics from lifecycle totals.

    Args:
        totals: Counts keyed by sent, opened, clicked, accepted, declined, bounced

    Returns:
        InvitationStats with derived rates
    """
    sent = totals.get("sent", 0)
    opened = totals.get("opened", 0)
    clicked = totals.get("clicked", 0)
    accepted = totals.get("accepted", 0)
    return InvitationStats(
        total_sent=sent,
        total_opened=opened,
        total_clicked=clicked,
        total_accepted=accepted,
        total_declined=totals.get("declined", 0),
        total_bounced=totals.get("bounced", 0),
        open_rate=rate(opened, sent),
        click_rate=rate(clicked, sent),
        accept_rate=rate(accepted, sent),
    )
