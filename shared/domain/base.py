"""
Domain building blocks

Entity, ValueObject, Aggregate and DomainEvent are plain dataclasses so
the domain layer stays free of Django. Fields are keyword-only: subclasses
add required fields after the defaulted ones declared here.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID, uuid4


@dataclass(eq=False, kw_only=True)
class Entity(ABC):
    """Identity-bearing object; equality and hashing go by id only"""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def touch(self):
        self.updated_at = datetime.now()


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable, compared by value"""


@dataclass(eq=False, kw_only=True)
class Aggregate(Entity):
    """
    Consistency boundary that records domain events

    Events stay on the aggregate until a unit of work collects them;
    they are published only after the unit of work commits.
    """
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        return list(self._events)


@dataclass(kw_only=True)
class DomainEvent:
    """
    Something that happened to an aggregate

    Subscribers on the message bus (notifications, ticketing, payments)
    receive these after commit.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: UUID | None = None

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            'event_id': str(self.event_id),
            'event_type': self.event_type,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
