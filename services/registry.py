"""
Service wiring.

Builds every engine service around one storage, one event publisher and one
clock, sharing the per-table and per-booking lock registries so HTTP handlers
and background loops serialize on the same keys.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from core.config import settings
from core.utils_datetime import get_current_datetime
from db import Storage
from services.booking_service import BookingService
from services.conflict_detector import ConflictDetector
from services.events import EventPublisher, WebSocketBroadcaster
from services.floor_service import FloorService
from services.locks import KeyedLocks
from services.notification_scheduler import NotificationScheduler
from services.periodic import PeriodicTask
from services.reconciliation import ReconciliationLoop
from services.waiting_list_service import WaitingListService


logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Engine services sharing storage, events and locks."""
    storage: Storage
    events: EventPublisher
    table_locks: KeyedLocks
    booking_locks: KeyedLocks
    conflicts: ConflictDetector
    bookings: BookingService
    floors: FloorService
    waiting_list: WaitingListService
    reconciliation: ReconciliationLoop
    notifications: NotificationScheduler
    tasks: List[PeriodicTask] = field(default_factory=list)

    def build_tasks(
        self,
        reconcile_interval_seconds: float = settings.reconcile_interval_seconds,
        notification_interval_seconds: float = settings.notification_interval_seconds,
    ) -> List[PeriodicTask]:
        """Create the three background loops (not started)."""
        self.tasks = [
            PeriodicTask("reconciliation", reconcile_interval_seconds, self.reconciliation.run_once),
            PeriodicTask(
                "upcoming-bookings",
                notification_interval_seconds,
                self.notifications.check_upcoming_bookings,
            ),
            PeriodicTask(
                "long-waiting",
                notification_interval_seconds,
                self.notifications.check_long_waiting_customers,
            ),
        ]
        return self.tasks

    def start_tasks(self) -> None:
        if not self.tasks:
            self.build_tasks()
        for task in self.tasks:
            task.start()

    async def stop_tasks(self) -> None:
        for task in self.tasks:
            await task.stop()


def build_services(
    storage: Storage,
    events: EventPublisher,
    clock: Callable[[], datetime] = get_current_datetime,
) -> Services:
    """Wire all services around the given collaborators."""
    table_locks = KeyedLocks()
    booking_locks = KeyedLocks()
    conflicts = ConflictDetector(storage)

    return Services(
        storage=storage,
        events=events,
        table_locks=table_locks,
        booking_locks=booking_locks,
        conflicts=conflicts,
        bookings=BookingService(storage, events, table_locks, conflicts, clock),
        floors=FloorService(storage, events, table_locks, conflicts, clock),
        waiting_list=WaitingListService(storage, events, table_locks, conflicts, clock),
        reconciliation=ReconciliationLoop(storage, events, table_locks, clock),
        notifications=NotificationScheduler(storage, events, booking_locks, clock),
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """Get the process-wide services, built on first use."""
    global _services
    if _services is None:
        _services = build_services(Storage(), WebSocketBroadcaster())
        logger.info("Seating engine services initialized")
    return _services
