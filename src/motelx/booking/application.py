"""
Прикладной слой контекста бронирования.

Содержит процесс оформления бронирования и журнал статусов.
Оформление выполняется одной транзакцией: гость, бронь, услуги
и первое событие статуса либо сохраняются вместе, либо не сохраняются вовсе.
"""

from typing import Callable, Iterable, List, Optional

from ..accommodation.application import AvailabilityApplicationService
from ..accommodation.interfaces import IRoomCatalogRepository
from ..shared_kernel import (
    BookingException,
    BookingId,
    BookingStatus,
    BusinessRuleValidationException,
    Clock,
    ConstraintViolationException,
    DuplicateBookingIdException,
    EventPersistException,
    GuestPersistException,
    IIdGenerator,
    ILogger,
    ReservationPersistException,
    ServicePersistException,
    now,
)
from ..shared_kernel.infrastructure import get_logger
from . import interfaces as ports
from .domain import (
    BookingConfirmation,
    BookingDraft,
    GuestInput,
    Reservation,
    ReservationEvent,
    new_booking_details,
)
from .infrastructure import RoomTypeLocks

BOOKING_ID_CONSTRAINT = "reservations.res_id"


class ReservationEventLog:
    """Журнал статусов бронирования (только добавление).

    Текущий статус бронирования - статус последнего события.
    """

    def __init__(
        self,
        uow_factory: Callable[[], ports.IBookingUnitOfWork],
        clock: Clock = now,
        logger: Optional[ILogger] = None,
    ):
        self._uow_factory = uow_factory
        self._clock = clock
        self._logger = logger or get_logger(__name__)

    def record(
        self,
        uow: ports.IBookingUnitOfWork,
        booking_id: BookingId,
        status: str,
        details: str,
        actor_email: str,
    ) -> bool:
        """Добавляет событие в уже открытой единице работы."""
        try:
            with uow.savepoint():
                return uow.events.append(
                    booking_id, actor_email, status, details, created_at=self._clock()
                )
        except ConstraintViolationException as e:
            self._logger.warning(
                "Status event rejected", booking_id=booking_id, status=status, error=str(e)
            )
            return False

    def append(self, booking_id: BookingId, status: str, details: str, actor_email: str) -> bool:
        """Добавляет событие отдельной транзакцией."""
        with self._uow_factory() as uow:
            appended = self.record(uow, booking_id, status, details, actor_email)
        if appended:
            self._logger.info(
                "Status event appended", booking_id=booking_id, status=status, actor=actor_email
            )
        return appended

    def change_status(self, booking_id: BookingId, status: str, admin_email: str) -> bool:
        """Смена статуса администратором (без комментария)."""
        return self.append(booking_id, status, "", admin_email)

    def current_status(self, booking_id: BookingId) -> Optional[str]:
        event = self._uow_factory().events.latest(booking_id)
        return event.status if event else None

    def history(self, booking_id: BookingId) -> List[ReservationEvent]:
        return self._uow_factory().events.history(booking_id)


class BookingApplicationService:
    """Сервис приложения для оформления бронирований."""

    def __init__(
        self,
        uow_factory: Callable[[], ports.IBookingUnitOfWork],
        availability: AvailabilityApplicationService,
        catalog: IRoomCatalogRepository,
        id_generator: IIdGenerator,
        event_log: Optional[ReservationEventLog] = None,
        locks: Optional[RoomTypeLocks] = None,
        booking_id_length: int = 10,
        booking_id_attempts: int = 5,
        clock: Clock = now,
        logger: Optional[ILogger] = None,
    ):
        self._uow_factory = uow_factory
        self._availability = availability
        self._catalog = catalog
        self._id_generator = id_generator
        self._logger = logger or get_logger(__name__)
        self._event_log = event_log or ReservationEventLog(uow_factory, clock, self._logger)
        self._locks = locks or RoomTypeLocks()
        self._booking_id_length = booking_id_length
        self._booking_id_attempts = booking_id_attempts
        self._clock = clock

    @property
    def event_log(self) -> ReservationEventLog:
        return self._event_log

    def create_booking(
        self, draft: BookingDraft, guest: GuestInput, actor_email: str
    ) -> BookingConfirmation:
        """Оформляет бронирование.

        Порядок шагов: идентификатор, гость, выбор номера и запись брони,
        услуги, первое событие ``new``. Любая ошибка откатывает все шаги,
        черновик вызывающей стороны при этом остается нетронутым.

        Raises:
            BusinessRuleValidationException: неизвестный тип номера или
                превышена вместимость
            NoRoomAvailableException: нет свободного номера
            GuestPersistException, ReservationPersistException,
            ServicePersistException, EventPersistException,
            DuplicateBookingIdException: сбой записи
            StorageUnavailableException: хранилище недоступно
        """
        self._check_room_type(draft)
        booking_id = self._id_generator.generate(self._booking_id_length)
        try:
            with self._locks.hold(draft.room_type):
                with self._uow_factory() as uow:
                    guest_id = self._add_guest(uow, guest)
                    reservation = self.allocate_room(uow, draft, booking_id, guest_id, actor_email)
                    booking_id = reservation.res_id

                    if draft.services and not self._add_services(uow, booking_id, draft.services):
                        raise ServicePersistException(
                            f"Не удалось сохранить услуги бронирования {booking_id}"
                        )

                    if not self._event_log.record(
                        uow,
                        booking_id,
                        BookingStatus.NEW.value,
                        new_booking_details(actor_email),
                        actor_email,
                    ):
                        raise EventPersistException(
                            f"Не удалось записать событие статуса бронирования {booking_id}"
                        )
        except BookingException as e:
            self._logger.warning(
                "Booking failed",
                room_type=draft.room_type,
                actor=actor_email,
                error=type(e).__name__,
                recoverable=e.recoverable,
                detail=str(e),
            )
            raise

        self._logger.info(
            "Booking created",
            booking_id=booking_id,
            room_type=draft.room_type,
            room_num=reservation.room_num,
            actor=actor_email,
        )
        return BookingConfirmation(
            booking_id=booking_id, room_num=reservation.room_num, guest_id=guest_id
        )

    def allocate_room(
        self,
        uow: ports.IBookingUnitOfWork,
        draft: BookingDraft,
        booking_id: BookingId,
        guest_id: int,
        actor_email: str,
    ) -> Reservation:
        """Выбирает свободный номер и записывает на него бронь.

        Вызывается под блокировкой типа номера и внутри транзакции
        ``uow``: между поиском номера и записью брони никто другой
        не может занять тот же номер. При совпадении идентификатора
        брони генерирует новый и повторяет запись.
        """
        room_num = self._availability.find_free_room_number(
            draft.room_type, draft.arrival, draft.departure
        )

        for attempt in range(1, self._booking_id_attempts + 1):
            reservation = Reservation(
                res_id=booking_id,
                user_email=actor_email,
                guest_id=guest_id,
                room_num=room_num,
                guests=draft.party_size,
                arrival=draft.arrival,
                departure=draft.departure,
                total_price=draft.total_price,
                transaction_date=self._clock(),
            )
            try:
                with uow.savepoint():
                    inserted = uow.reservations.add(reservation)
            except ConstraintViolationException as e:
                if e.constraint != BOOKING_ID_CONSTRAINT:
                    raise ReservationPersistException(str(e)) from e
                self._logger.warning(
                    "Booking id collision, regenerating", booking_id=booking_id, attempt=attempt
                )
                booking_id = self._id_generator.generate(self._booking_id_length)
                continue

            if not inserted:
                raise ReservationPersistException(f"Не удалось сохранить бронирование {booking_id}")
            self._logger.debug("Room allocated", booking_id=booking_id, room_num=room_num)
            return reservation

        raise DuplicateBookingIdException(
            f"Не удалось подобрать уникальный идентификатор за {self._booking_id_attempts} попыток"
        )

    def add_services(self, booking_id: BookingId, services: Iterable[str]) -> bool:
        """Добавляет услуги к бронированию. Либо все, либо ни одной."""
        try:
            with self._uow_factory() as uow:
                if not self._add_services(uow, booking_id, services):
                    raise ServicePersistException(
                        f"Не удалось сохранить услуги бронирования {booking_id}"
                    )
        except ServicePersistException as e:
            self._logger.warning("Services rejected", booking_id=booking_id, error=str(e))
            return False
        return True

    def add_event(self, booking_id: BookingId, status: str, details: str, actor_email: str) -> bool:
        return self._event_log.append(booking_id, status, details, actor_email)

    def _check_room_type(self, draft: BookingDraft) -> None:
        room_type = self._catalog.get_room_type(draft.room_type)
        if room_type is None:
            raise BusinessRuleValidationException(f"Неизвестный тип номера {draft.room_type!r}")
        if draft.party_size > room_type.max_person:
            raise BusinessRuleValidationException(
                f"Превышена вместимость номера (макс. {room_type.max_person} человек)"
            )

    def _add_guest(self, uow: ports.IBookingUnitOfWork, guest: GuestInput) -> int:
        try:
            guest_id = uow.guests.add(guest)
        except ConstraintViolationException as e:
            raise GuestPersistException(str(e)) from e
        if guest_id is None:
            raise GuestPersistException("Не удалось сохранить данные гостя")
        return guest_id

    def _add_services(
        self, uow: ports.IBookingUnitOfWork, booking_id: BookingId, services: Iterable[str]
    ) -> bool:
        try:
            with uow.savepoint():
                for name in sorted(set(services)):
                    if not uow.services.add(booking_id, name):
                        return False
        except ConstraintViolationException as e:
            self._logger.warning("Service insert rejected", booking_id=booking_id, error=str(e))
            return False
        return True
