"""Errors raised by the seating engine services."""
from datetime import datetime
from typing import Any, Optional

from domain.models import ConflictDetail


class SeatingError(Exception):
    """Base class for all seating engine errors."""
    pass


class NotFoundError(SeatingError):
    """Raised when a booking, table, floor or waiting entry id does not resolve."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class BookingConflictError(SeatingError):
    """Raised when a requested time window overlaps an existing booking on the table."""

    def __init__(self, conflict: ConflictDetail, suggested_time: datetime):
        self.conflict = conflict
        self.suggested_time = suggested_time
        super().__init__(
            f"Table is booked by {conflict.customer_name} until "
            f"{conflict.end_time:%H:%M}; next free slot {suggested_time:%H:%M}"
        )


class InvalidTargetError(SeatingError):
    """Raised when an operation targets a table that cannot accept it."""
    pass


class InvalidTransitionError(SeatingError):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, entity: str, current: Any, target: Any, entity_id: Optional[str] = None):
        self.entity = entity
        self.current = current
        self.target = target
        self.entity_id = entity_id
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(f"{entity} cannot move from {current_value} to {target_value}")


class StorageError(SeatingError):
    """Raised when a storage read or write fails or times out."""
    pass
