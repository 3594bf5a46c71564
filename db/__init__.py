"""
Persistence for the seating engine.

Floors, tables, bookings and the waiting list live in one relational schema
reached through async SQLAlchemy sessions. Services talk to it only through
Storage.
"""

from .models_sqlalchemy import Floor, Table, Booking, WaitingListEntry
from .session import close_db, init_db
from .storage import Storage

__all__ = [
    "Floor",
    "Table",
    "Booking",
    "WaitingListEntry",
    "Storage",
    "init_db",
    "close_db",
]
