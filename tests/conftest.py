"""
Общие фикстуры тестов.

База в памяти со справочником номеров, предсказуемые часы
и предсказуемый генератор идентификаторов бронирования.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

import pytest

from motelx.booking.domain import BookingDraft, GuestInput
from motelx.bootstrap import bootstrap_app
from motelx.shared_kernel import Settings
from motelx.shared_kernel.infrastructure import RandomStringGenerator


class FakeClock:
    """Часы, которые при каждом вызове уходят вперед на ``step``."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0), step=timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


class SequenceIdGenerator:
    """Выдает заранее заданные идентификаторы, затем случайные."""

    def __init__(self, ids: Iterable[str] = ()):
        self.ids: List[str] = list(ids)
        self.calls = 0
        self._fallback = RandomStringGenerator()

    def generate(self, length: int) -> str:
        self.calls += 1
        if self.ids:
            return self.ids.pop(0)
        return self._fallback.generate(length)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def id_generator():
    return SequenceIdGenerator()


@pytest.fixture
def settings():
    return Settings(database_path=":memory:")


@pytest.fixture
def app(settings, clock, id_generator):
    """Собранное приложение над базой в памяти с образцовым справочником."""
    components = bootstrap_app(
        settings=settings, clock=clock, id_generator=id_generator, seed_sample_catalog=True
    )
    yield components
    components["db"].close()


@pytest.fixture
def db(app):
    return app["db"]


@pytest.fixture
def booking_service(app):
    return app["booking_service"]


@pytest.fixture
def availability_service(app):
    return app["availability_service"]


@pytest.fixture
def query_service(app):
    return app["query_service"]


@pytest.fixture
def event_log(app):
    return app["event_log"]


@pytest.fixture
def guest():
    return GuestInput(
        first_name="Иван",
        last_name="Петров",
        address="ул. Ленина, 1",
        city="Казань",
        dob=date(1990, 3, 15),
        phone="+7 900 000-00-00",
    )


@pytest.fixture
def make_draft():
    """Фабрика черновиков: двухместный номер на 1-3 июня 2024 с завтраком."""

    def _make(**overrides) -> BookingDraft:
        values = dict(
            room_type="Double",
            arrival=date(2024, 6, 1),
            departure=date(2024, 6, 3),
            party_size=2,
            services=frozenset({"breakfast"}),
            total_price=140.0,
        )
        values.update(overrides)
        return BookingDraft(**values)

    return _make


@pytest.fixture
def reserve(db):
    """Записывает бронь напрямую в таблицы, минуя процесс оформления."""

    def _reserve(
        res_id: str,
        room_num: int,
        arrival: date,
        departure: date,
        transaction_date: Optional[datetime] = None,
    ) -> None:
        guest_id = db.execute(
            "INSERT INTO guests (first_name, last_name) VALUES (?, ?)", ("Тест", "Гость")
        ).lastrowid
        db.execute(
            "INSERT INTO reservations "
            "(res_id, user_email, guest_id, room_num, guests, arrival, departure, total_price, "
            "transaction_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                res_id,
                "staff@example.com",
                guest_id,
                room_num,
                1,
                arrival,
                departure,
                0.0,
                transaction_date or datetime(2024, 1, 1, 12, 0),
            ),
        )

    return _reserve
