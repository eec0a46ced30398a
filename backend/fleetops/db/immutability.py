"""ORM guards for rows that must never change once written.

* ``ShiftEvent`` is the append-only audit trail of a shift: no UPDATE, no DELETE.
* ``Expense`` is immutable after creation.
* ``RevenueRecord`` may have its ``reconciled`` flag toggled but is never deleted.
* ``ShiftAssignment`` is frozen once it reached ``completed``.
* ``ScheduledTripAuditLog`` is append-only like ``ShiftEvent``.

The listeners fire at flush time, before SQL is emitted, so the surrounding
transaction is aborted and nothing reaches the database.
"""

from __future__ import annotations

import logging

from sqlalchemy import event, inspect

from fleetops.core.errors import ImmutableRecordError
from fleetops.models.enums import ShiftStatus
from fleetops.models.expense import Expense
from fleetops.models.revenue_record import RevenueRecord
from fleetops.models.scheduled_trip import ScheduledTripAuditLog
from fleetops.models.shift_assignment import ShiftAssignment
from fleetops.models.shift_event import ShiftEvent


logger = logging.getLogger(__name__)

_REVENUE_MUTABLE_FIELDS = frozenset({"reconciled"})


def _reject(kind: str, target, action: str) -> None:
    logger.error("Blocked %s of %s id=%s", action, kind, getattr(target, "id", None))
    raise ImmutableRecordError(f"{kind} rows are immutable; {action} is not allowed")


@event.listens_for(ShiftEvent, "before_update")
def _shift_event_update(mapper, connection, target):
    _reject("ShiftEvent", target, "update")


@event.listens_for(ShiftEvent, "before_delete")
def _shift_event_delete(mapper, connection, target):
    _reject("ShiftEvent", target, "delete")


@event.listens_for(ScheduledTripAuditLog, "before_update")
def _trip_audit_update(mapper, connection, target):
    _reject("ScheduledTripAuditLog", target, "update")


@event.listens_for(ScheduledTripAuditLog, "before_delete")
def _trip_audit_delete(mapper, connection, target):
    _reject("ScheduledTripAuditLog", target, "delete")


@event.listens_for(Expense, "before_update")
def _expense_update(mapper, connection, target):
    _reject("Expense", target, "update")


@event.listens_for(Expense, "before_delete")
def _expense_delete(mapper, connection, target):
    _reject("Expense", target, "delete")


@event.listens_for(RevenueRecord, "before_update")
def _revenue_update(mapper, connection, target):
    state = inspect(target)
    changed = {attr.key for attr in state.attrs if attr.history.has_changes()}
    if changed - _REVENUE_MUTABLE_FIELDS:
        _reject("RevenueRecord", target, "update of " + ", ".join(sorted(changed)))


@event.listens_for(RevenueRecord, "before_delete")
def _revenue_delete(mapper, connection, target):
    _reject("RevenueRecord", target, "delete")


@event.listens_for(ShiftAssignment, "before_update")
def _completed_assignment_update(mapper, connection, target):
    history = inspect(target).attrs.status.history
    previous = history.deleted[0] if history.deleted else target.status
    if previous == ShiftStatus.completed:
        _reject("Completed ShiftAssignment", target, "update")
