"""
Сборка компонентов приложения.
"""

from functools import partial
from typing import Any, Dict, Optional

from .accommodation.application import AvailabilityApplicationService, RoomCatalogApplicationService
from .accommodation.domain import Room, RoomType
from .accommodation.infrastructure import SqlAvailabilityRepository, SqlRoomCatalogRepository
from .booking.application import BookingApplicationService, ReservationEventLog
from .booking.infrastructure import BookingUnitOfWork, RoomTypeLocks
from .booking.queries import ReservationQueryService
from .shared_kernel import Clock, IIdGenerator, Settings, load_settings, now
from .shared_kernel.infrastructure import (
    RandomStringGenerator,
    SQLiteDatabase,
    configure_logging,
    create_schema,
    get_logger,
)

SAMPLE_ROOM_TYPES = [
    RoomType(name="Single", description="Одноместный номер", price=45.0, max_person=1),
    RoomType(name="Double", description="Двухместный номер", price=70.0, max_person=2),
    RoomType(
        name="Family",
        description="Семейный номер с кухней",
        price=120.0,
        max_person=4,
        pets_allowed=True,
    ),
]

SAMPLE_ROOMS = [
    Room(room_num=101, floor=1, room_type="Single"),
    Room(room_num=102, floor=1, room_type="Double"),
    Room(room_num=103, floor=1, room_type="Double"),
    Room(room_num=201, floor=2, room_type="Double"),
    Room(room_num=202, floor=2, room_type="Family"),
]


def bootstrap_app(
    settings: Optional[Settings] = None,
    db: Optional[SQLiteDatabase] = None,
    id_generator: Optional[IIdGenerator] = None,
    clock: Clock = now,
    seed_sample_catalog: bool = False,
) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger = get_logger("motelx")

    # 1. Хранилище и схема
    db = db or SQLiteDatabase(settings.database_path, timeout=settings.busy_timeout)
    create_schema(db)

    # 2. Контекст размещения
    catalog_service = RoomCatalogApplicationService(SqlRoomCatalogRepository(db))
    if seed_sample_catalog:
        catalog_service.seed(SAMPLE_ROOM_TYPES, SAMPLE_ROOMS)
    availability_service = AvailabilityApplicationService(
        SqlAvailabilityRepository(db, settings.overlap_policy)
    )

    # 3. Контекст бронирования
    uow_factory = partial(BookingUnitOfWork, db)
    event_log = ReservationEventLog(uow_factory, clock)
    booking_service = BookingApplicationService(
        uow_factory=uow_factory,
        availability=availability_service,
        catalog=catalog_service.catalog,
        id_generator=id_generator or RandomStringGenerator(),
        event_log=event_log,
        locks=RoomTypeLocks(),
        booking_id_length=settings.booking_id_length,
        booking_id_attempts=settings.booking_id_attempts,
        clock=clock,
    )
    query_service = ReservationQueryService(db)

    logger.info(
        "Application bootstrapped",
        database=db.path,
        overlap_policy=settings.overlap_policy.value,
    )

    return {
        "db": db,
        "settings": settings,
        "catalog_service": catalog_service,
        "availability_service": availability_service,
        "booking_service": booking_service,
        "event_log": event_log,
        "query_service": query_service,
    }
