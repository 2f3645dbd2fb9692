"""
Service layer for the Campus Library reservation backend.

- ReservationLifecycleManager: transactional cancel / checkout / reserve
- ReservationQueryService: staff and student reservation listings
"""

from .lifecycle import ReservationLifecycleManager
from .queries import MyReservationFilters, ReservationQueryService, StaffReservationFilters

__all__ = [
    "MyReservationFilters",
    "ReservationLifecycleManager",
    "ReservationQueryService",
    "StaffReservationFilters",
]
