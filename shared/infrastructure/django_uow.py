"""
Django Unit of Work

One transaction.atomic() block per unit of work. Collected domain events
are handed to transaction.on_commit(), so subscribers never see events of
a rolled back transaction.
"""

from typing import List
import logging

from django.db import transaction

from shared.application.message_bus import MessageBus
from shared.application.uow import AbstractUnitOfWork
from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Transactional unit of work over a Django database alias

    Usage:
        with DjangoChaletUnitOfWork(bus) as uow:
            booking = uow.chalets.get_booking_by_id(booking_id)
            booking.confirm()
            uow.chalets.update_booking(booking)
            uow.collect_events(booking)
        # BookingConfirmed is published once the outermost transaction commits

    Nested inside an outer atomic block the unit of work becomes a
    savepoint and publication waits for the outer commit.
    """

    def __init__(self, bus: MessageBus | None = None, using: str | None = None):
        super().__init__(bus)
        self._using = using
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            atomic, self._atomic = self._atomic, None
            if atomic is not None:
                atomic.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        events = self._take_events()
        logger.debug(f"Committing unit of work with {len(events)} pending events")
        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self._using)

    def rollback(self):
        self._discard_events()

    def _publish_events(self, events: List[DomainEvent]):
        # Runs after the commit; the data is already durable
        try:
            super()._publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing events after commit: {e}", exc_info=True)
