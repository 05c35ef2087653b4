"""
Unit of Work for the reservation engine.

Gives the lifecycle manager a repository plus a way to serialize writes
for one chalet. The lock is held until the unit of work ends.
"""

from abc import abstractmethod
from uuid import UUID

from shared.application.uow import AbstractUnitOfWork

from apps.chalets.domain.repository import ChaletRepository


class ChaletUnitOfWork(AbstractUnitOfWork):
    """
    Usage:
        with uow_factory() as uow:
            uow.lock_chalet(chalet_id)
            ...
            uow.chalets.insert_booking(booking, booking.add_ons)
            uow.collect_events(booking)
        # committed, events published
    """

    chalets: ChaletRepository

    @abstractmethod
    def lock_chalet(self, chalet_id: UUID):
        """Block other units of work from writing bookings for this chalet"""
