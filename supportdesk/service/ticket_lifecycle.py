"""
Ticket lifecycle bookkeeping.

Applied to every ticket write made by this service (single and bulk
updates). The database trigger in the schema migration does the same for
writes made by anything else.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from supportdesk.models.ticket import Ticket


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_updated_at(previous: Optional[datetime], now: datetime) -> datetime:
    """now, nudged forward if the clock has not moved past the previous stamp."""
    if isinstance(previous, datetime) and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def enters_resolution(current: Ticket, new_status: Optional[str]) -> bool:
    return (
        new_status is not None
        and new_status != current.status
        and new_status in Ticket.RESOLVED_STATUSES
    )


def apply_update_side_effects(current: Ticket, changes: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """
    Column values to write for an update of `current`.

    Refreshes updated_at and stamps resolved_at the first time the status
    moves into resolved or closed. resolved_at is never overwritten once set.

    Args:
        current: The row as it is before the update.
        changes: Caller-supplied column changes (already permission-checked).
        now: Current time.

    Returns:
        New dict with the changes plus lifecycle columns.
    """
    values = dict(changes)
    values.pop('resolved_at', None)
    values['updated_at'] = next_updated_at(current.updated_at, now)

    if current.resolved_at is None and enters_resolution(current, values.get('status')):
        values['resolved_at'] = now

    return values
