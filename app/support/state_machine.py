"""Ticket status rules.

Normal flow is Pending -> In Progress -> Resolved. The only automatic step is
Pending -> In Progress, taken the first time a verified admin opens the
ticket. Admins may also move a ticket to any status at any time; that manual
override wins over the forward ordering. Nothing ever moves a ticket on behalf
of a student.
"""

from app.support.models.ticket import TicketStatus

INITIAL_STATUS = TicketStatus.PENDING

_ORDER = {
    TicketStatus.PENDING: 0,
    TicketStatus.IN_PROGRESS: 1,
    TicketStatus.RESOLVED: 2,
}


def parse_status(value: str) -> TicketStatus | None:
    try:
        return TicketStatus(value)
    except ValueError:
        return None


def auto_transition_on_open(current: str) -> TicketStatus | None:
    """Target of the automatic transition, or None when opening changes nothing."""
    if parse_status(current) == TicketStatus.PENDING:
        return TicketStatus.IN_PROGRESS
    return None


def manual_transition(current: str, target: TicketStatus) -> TicketStatus | None:
    """Target of an admin override, or None when the ticket is already there."""
    if parse_status(current) == target:
        return None
    return target


def is_forward(current: TicketStatus, target: TicketStatus) -> bool:
    return _ORDER[target] > _ORDER[current]
