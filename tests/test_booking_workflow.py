"""
Интеграционные тесты процесса оформления бронирования.
"""

import re
from datetime import date
from functools import partial

import pytest
from pydantic import ValidationError

from motelx.booking.application import BookingApplicationService
from motelx.booking.domain import BookingDraft, GuestInput
from motelx.booking.infrastructure import BookingUnitOfWork
from motelx.shared_kernel import (
    BookingException,
    BusinessRuleValidationException,
    DuplicateBookingIdException,
    EventPersistException,
    GuestPersistException,
    NoRoomAvailableException,
    ReservationPersistException,
    ServicePersistException,
)
from motelx.shared_kernel.infrastructure import RandomStringGenerator

ACTOR = "ivan@example.com"


def row_counts(db):
    uow = BookingUnitOfWork(db)
    return {
        "guests": uow.guests.count(),
        "reservations": uow.reservations.count(),
        "events": db.fetch_one("SELECT COUNT(*) AS n FROM reservation_events")["n"],
        "services": db.fetch_one("SELECT COUNT(*) AS n FROM reservation_services")["n"],
    }


# Репозитории-заглушки, которые не сохраняют ни одной строки


class RejectingGuestRepository:
    def add(self, guest):
        return None

    def count(self):
        return 0


class RejectingReservationRepository:
    def add(self, reservation):
        return False

    def get_by_id(self, booking_id):
        return None

    def count(self):
        return 0


class RejectingServiceRepository:
    def add(self, booking_id, service_name):
        return False

    def list_for(self, booking_id):
        return []


class RejectingEventRepository:
    def append(self, booking_id, actor_email, status, details, created_at):
        return False

    def latest(self, booking_id):
        return None

    def history(self, booking_id):
        return []


class RejectingGuestsUnitOfWork(BookingUnitOfWork):
    @property
    def guests(self):
        return RejectingGuestRepository()


class RejectingReservationsUnitOfWork(BookingUnitOfWork):
    @property
    def reservations(self):
        return RejectingReservationRepository()


class RejectingServicesUnitOfWork(BookingUnitOfWork):
    @property
    def services(self):
        return RejectingServiceRepository()


class RejectingEventsUnitOfWork(BookingUnitOfWork):
    @property
    def events(self):
        return RejectingEventRepository()


class TestCreateBooking:
    """Тесты для BookingApplicationService.create_booking."""

    def test_happy_path(self, db, booking_service, query_service, event_log, make_draft, guest):
        """Двухместный номер на две ночи с завтраком."""
        # Действие
        confirmation = booking_service.create_booking(make_draft(), guest, ACTOR)

        # Проверка
        assert confirmation.clear_draft is True
        assert confirmation.status == "new"
        assert confirmation.room_num == 102

        detail = query_service.fetch_single(confirmation.booking_id)
        assert detail is not None
        assert detail.nights == 2
        assert detail.services == ["breakfast"]
        assert detail.status == "new"
        assert detail.room_type == "Double"
        assert detail.floor == 1
        assert detail.room_price == pytest.approx(140.0)
        assert detail.total_price == pytest.approx(140.0)
        assert detail.party_size == 2
        assert detail.arrival == date(2024, 6, 1)
        assert detail.departure == date(2024, 6, 3)
        assert detail.first_name == "Иван"
        assert detail.user_email == ACTOR

        [event] = event_log.history(confirmation.booking_id)
        assert event.details == f"New booking created by user {ACTOR}"
        assert event.user_email == ACTOR

        uow = BookingUnitOfWork(db)
        reservation = uow.reservations.get_by_id(confirmation.booking_id)
        assert reservation.room_num == 102
        assert reservation.guest_id == confirmation.guest_id
        assert reservation.guests == 2
        assert uow.services.list_for(confirmation.booking_id) == ["breakfast"]
        assert uow.reservations.get_by_id("NOSUCHBOOK") is None

    def test_booking_id_format(self, app, make_draft, guest):
        service = BookingApplicationService(
            uow_factory=partial(BookingUnitOfWork, app["db"]),
            availability=app["availability_service"],
            catalog=app["catalog_service"].catalog,
            id_generator=RandomStringGenerator(),
        )

        confirmation = service.create_booking(make_draft(), guest, ACTOR)

        assert re.fullmatch(r"[A-Z0-9]{10}", confirmation.booking_id)

    def test_rooms_allocated_lowest_first(self, booking_service, make_draft, guest):
        rooms = [booking_service.create_booking(make_draft(), guest, ACTOR).room_num for _ in range(3)]

        assert rooms == [102, 103, 201]

    def test_no_room_rolls_back_everything(self, db, booking_service, make_draft, guest):
        """Если номеров нет, ни гость, ни бронь не сохраняются."""
        # Подготовка: все двухместные номера заняты
        for _ in range(3):
            booking_service.create_booking(make_draft(), guest, ACTOR)
        before = row_counts(db)

        # Действие
        with pytest.raises(NoRoomAvailableException) as exc_info:
            booking_service.create_booking(make_draft(), guest, ACTOR)

        # Проверка
        assert exc_info.value.recoverable is True
        assert row_counts(db) == before
        assert before["guests"] == 3
        assert before["reservations"] == 3

    def test_other_dates_still_bookable(self, booking_service, make_draft, guest):
        for _ in range(3):
            booking_service.create_booking(make_draft(), guest, ACTOR)

        confirmation = booking_service.create_booking(
            make_draft(arrival=date(2024, 6, 10), departure=date(2024, 6, 12)), guest, ACTOR
        )

        assert confirmation.room_num == 102

    def test_booking_without_services(self, booking_service, query_service, make_draft, guest):
        confirmation = booking_service.create_booking(
            make_draft(services=frozenset()), guest, ACTOR
        )

        assert query_service.fetch_single(confirmation.booking_id).services == []

    def test_unknown_room_type(self, db, booking_service, id_generator, make_draft, guest):
        with pytest.raises(BusinessRuleValidationException):
            booking_service.create_booking(make_draft(room_type="Penthouse"), guest, ACTOR)

        assert id_generator.calls == 0
        assert row_counts(db)["guests"] == 0

    def test_party_larger_than_room(self, booking_service, make_draft, guest):
        with pytest.raises(BusinessRuleValidationException):
            booking_service.create_booking(make_draft(party_size=3), guest, ACTOR)

    def test_date_order_message(self, make_draft):
        """Порядок дат проверяется тем же правилом, что и у DateRange."""
        with pytest.raises(ValidationError, match="Дата выезда должна быть позже даты заезда"):
            make_draft(arrival=date(2024, 6, 5), departure=date(2024, 6, 3))

    def test_invalid_draft_rejected(self, make_draft):
        with pytest.raises(ValidationError):
            make_draft(departure=date(2024, 6, 1))
        with pytest.raises(ValidationError):
            make_draft(party_size=0)
        with pytest.raises(ValidationError):
            GuestInput(first_name="", last_name="Петров")

    def test_draft_is_not_changed(self, booking_service, make_draft, guest):
        draft = make_draft()

        booking_service.create_booking(draft, guest, ACTOR)

        assert draft == make_draft()


class TestBookingIdCollisions:
    """Повторная генерация идентификатора при совпадении."""

    def test_collision_regenerates_id(self, booking_service, id_generator, make_draft, guest):
        # Подготовка
        id_generator.ids = ["AAAAAAAAAA", "AAAAAAAAAA", "BBBBBBBBBB"]
        first = booking_service.create_booking(make_draft(), guest, ACTOR)

        # Действие
        second = booking_service.create_booking(make_draft(), guest, ACTOR)

        # Проверка
        assert first.booking_id == "AAAAAAAAAA"
        assert second.booking_id == "BBBBBBBBBB"
        assert second.room_num == 103
        assert id_generator.calls == 3

    def test_attempts_exhausted(self, db, booking_service, id_generator, make_draft, guest):
        id_generator.ids = ["AAAAAAAAAA"] * 10
        booking_service.create_booking(make_draft(), guest, ACTOR)

        with pytest.raises(DuplicateBookingIdException):
            booking_service.create_booking(make_draft(), guest, ACTOR)

        counts = row_counts(db)
        assert counts["reservations"] == 1
        assert counts["guests"] == 1


class TestPersistFailures:
    """Каждый сбой записи откатывает оформление целиком."""

    @pytest.fixture
    def make_service(self, app):
        def _make(uow_class):
            return BookingApplicationService(
                uow_factory=partial(uow_class, app["db"]),
                availability=app["availability_service"],
                catalog=app["catalog_service"].catalog,
                id_generator=RandomStringGenerator(),
            )

        return _make

    @pytest.mark.parametrize(
        "uow_class, exception",
        [
            (RejectingGuestsUnitOfWork, GuestPersistException),
            (RejectingReservationsUnitOfWork, ReservationPersistException),
            (RejectingServicesUnitOfWork, ServicePersistException),
            (RejectingEventsUnitOfWork, EventPersistException),
        ],
    )
    def test_failure_leaves_no_rows(self, db, make_service, make_draft, guest, uow_class, exception):
        service = make_service(uow_class)

        with pytest.raises(exception) as exc_info:
            service.create_booking(make_draft(), guest, ACTOR)

        assert isinstance(exc_info.value, BookingException)
        assert exc_info.value.recoverable is False
        assert row_counts(db) == {"guests": 0, "reservations": 0, "events": 0, "services": 0}

    def test_reservation_never_visible_without_event(self, make_service, query_service, make_draft, guest):
        service = make_service(RejectingEventsUnitOfWork)

        with pytest.raises(EventPersistException):
            service.create_booking(make_draft(), guest, ACTOR)

        assert query_service.fetch_all() == []


class TestAddServicesAndEvents:
    @pytest.fixture
    def booking_id(self, booking_service, make_draft, guest):
        return booking_service.create_booking(make_draft(), guest, ACTOR).booking_id

    def test_add_services(self, booking_service, query_service, booking_id):
        assert booking_service.add_services(booking_id, {"parking", "late-checkout"}) is True

        assert query_service.fetch_single(booking_id).services == [
            "breakfast",
            "late-checkout",
            "parking",
        ]

    def test_add_services_unknown_booking(self, booking_service):
        assert booking_service.add_services("NOSUCHBOOK", {"parking"}) is False

    def test_add_services_is_all_or_nothing(self, booking_service, query_service, booking_id):
        """Повтор уже заказанной услуги отменяет и остальные услуги запроса."""
        assert booking_service.add_services(booking_id, {"airport-shuttle", "breakfast"}) is False

        assert query_service.fetch_single(booking_id).services == ["breakfast"]

    def test_add_event(self, booking_service, event_log, booking_id):
        assert booking_service.add_event(booking_id, "confirmed", "Оплата получена", "admin@example.com")

        assert event_log.current_status(booking_id) == "confirmed"

    def test_add_event_unknown_booking(self, booking_service):
        assert booking_service.add_event("NOSUCHBOOK", "confirmed", "", "admin@example.com") is False
