from datetime import date

import pytest

from shared.application.message_bus import MessageBus

from apps.chalets.application.command_handlers import BookingLifecycleManager, CreateBookingCommand
from apps.chalets.domain.entities import AddOn, Chalet, PricingMode
from apps.chalets.domain.policies import BookingSettings
from apps.chalets.infrastructure.memory import InMemoryChaletStore, InMemoryChaletUnitOfWork
from apps.chalets.tests.factories import usd


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def store():
    return InMemoryChaletStore()


@pytest.fixture
def chalet(store):
    return store.add_chalet(Chalet(
        name="Pine Lodge",
        capacity=4,
        base_price=usd(100),
        weekend_price=usd(120),
    ))


@pytest.fixture
def firewood(store):
    return store.add_add_on(AddOn(name="Firewood", price=usd(15), pricing_mode=PricingMode.PER_NIGHT))


@pytest.fixture
def cleaning(store):
    return store.add_add_on(AddOn(name="Final cleaning", price=usd(40), pricing_mode=PricingMode.ONE_TIME))


@pytest.fixture
def uow_factory(store, bus):
    return lambda: InMemoryChaletUnitOfWork(store, bus)


@pytest.fixture
def manager(uow_factory):
    return BookingLifecycleManager(uow_factory, BookingSettings())


@pytest.fixture
def create_command(chalet):
    def _make(check_in=date(2026, 1, 5), check_out=date(2026, 1, 7), guests_count=2, **kwargs):
        return CreateBookingCommand(
            chalet_id=kwargs.pop('chalet_id', chalet.id),
            check_in=check_in,
            check_out=check_out,
            guests_count=guests_count,
            guest_name=kwargs.pop('guest_name', "Ana Silva"),
            guest_email=kwargs.pop('guest_email', "ana@example.com"),
            **kwargs,
        )
    return _make
