"""Room records and the operations that write them.

Every operation writes ``<collection>/<roomId>`` for one checked room id.
Only ``create_room`` and seeding bring a record into existence; the other
writes fail with ``RoomNotFound`` on a missing room. Nothing here keeps state
between calls; the views own the live snapshots.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from campus_monitor import schemas
from campus_monitor.core.config import settings
from campus_monitor.services.store import RealtimeStore

logger = logging.getLogger(__name__)

# Floors 1-3, rooms 01-10: A101..A110, A201..A210, A301..A310
SEED_ROOM_IDS = [f"A{floor}{number:02d}" for floor in (1, 2, 3) for number in range(1, 11)]

SCHEDULE_FIELDS_REQUIRED = "Please fill in Subject and Time"
CLASS_SCHEDULED = "Class scheduled successfully!"
CLASS_CLEARED = "Scheduled class cleared!"
INVALID_ACCESS_CODE = "Invalid access code!"


class ValidationFailed(ValueError):
    pass


class RoomNotFound(LookupError):
    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


def check_room_id(room_id: Optional[str]) -> str:
    """Trimmed room id; blank ids and ids containing a path separator are refused."""
    room_id = (room_id or "").strip()
    if not room_id:
        raise ValidationFailed("Room number is required")
    if "/" in room_id:
        raise ValidationFailed(f"Invalid room number: {room_id!r}")
    return room_id


def room_path(room_id: str) -> str:
    return f"{settings.collection}/{check_room_id(room_id)}"


def default_record() -> Dict[str, Any]:
    return schemas.RoomRecord().to_store()


def no_class_fields() -> Dict[str, Any]:
    record = default_record()
    return {f: record[f] for f in ("nextClass", "subject", "faculty", "nextClassTime")}


def status_for(count: int) -> str:
    return schemas.RoomStatus.occupied.value if count > 0 else schemas.RoomStatus.free.value


def list_delete_prompt(room_id: str) -> str:
    return f"Are you sure you want to delete Room {room_id}?"


def detail_delete_prompt(room_id: str) -> str:
    return f"Delete room {room_id}?"


# ---------------------- Decoding ----------------------

def decode_room(room_id: str, value: Optional[Dict[str, Any]]) -> schemas.Room:
    return schemas.Room(id=room_id, **schemas.RoomRecord.from_store(value).model_dump())


def decode_rooms(value: Optional[Dict[str, Any]]) -> List[schemas.Room]:
    """Collection snapshot -> rooms, in the order the store enumerated them."""
    return [decode_room(room_id, record) for room_id, record in (value or {}).items()]


# ---------------------- Derived display ----------------------

def occupied_count(rooms: Iterable[schemas.RoomRecord]) -> int:
    return sum(1 for r in rooms if r.occupancy_count > 0)


def dashboard_stats(rooms: List[schemas.Room]) -> schemas.DashboardStats:
    occupied = occupied_count(rooms)
    return schemas.DashboardStats(total=len(rooms), occupied=occupied, free=len(rooms) - occupied)


def upcoming_class(record: schemas.RoomRecord) -> Optional[schemas.UpcomingClass]:
    if not record.has_upcoming_class:
        return None
    return schemas.UpcomingClass(subject=record.subject, faculty=record.faculty, time=record.next_class_time)


def card_status(record: schemas.RoomRecord) -> schemas.StatusBadge:
    """Badge of a dashboard card: text follows the count, tone also honours the stored status."""
    text = "Occupied" if record.occupancy_count > 0 else "Free"
    if record.current_status == schemas.RoomStatus.occupied.value or record.occupancy_count > 0:
        tone = schemas.StatusTone.occupied
    elif record.has_upcoming_class:
        tone = schemas.StatusTone.upcoming
    else:
        tone = schemas.StatusTone.free
    return schemas.StatusBadge(tone=tone, text=text)


def detail_status(record: schemas.RoomRecord) -> schemas.StatusBadge:
    if record.current_status == schemas.RoomStatus.occupied.value:
        return schemas.StatusBadge(tone=schemas.StatusTone.occupied, text="Occupied")
    if record.has_upcoming_class:
        return schemas.StatusBadge(tone=schemas.StatusTone.upcoming, text="Upcoming Class")
    return schemas.StatusBadge(tone=schemas.StatusTone.free, text="Free")


def room_card(room: schemas.Room) -> schemas.RoomCard:
    return schemas.RoomCard(room=room, status=card_status(room), upcoming=upcoming_class(room))


# ---------------------- Writes ----------------------

def create_room(store: RealtimeStore, room_id: str) -> schemas.Room:
    """Write the default record under ``room_id``, overwriting any existing one."""
    room_id = check_room_id(room_id)
    record = default_record()
    store.set(room_path(room_id), record)
    logger.info("Created room %s", room_id)
    return decode_room(room_id, record)


def delete_room(store: RealtimeStore, room_id: str) -> None:
    room_id = check_room_id(room_id)
    store.remove(room_path(room_id))
    logger.info("Deleted room %s", room_id)


def _step_occupancy(store: RealtimeStore, room_id: str, delta: int) -> schemas.RoomRecord:
    def apply(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if current is None:
            raise RoomNotFound(room_id)
        count = max(schemas.RoomRecord.from_store(current).occupancy_count + delta, 0)
        return {**current, "occupancyCount": count, "currentStatus": status_for(count)}

    value = store.transaction(room_path(room_id), apply)
    record = schemas.RoomRecord.from_store(value)
    logger.info("Room %s occupancy -> %s (%s)", room_id, record.occupancy_count, record.current_status)
    return record


def enter_room(store: RealtimeStore, room_id: str) -> schemas.RoomRecord:
    return _step_occupancy(store, room_id, +1)


def exit_room(store: RealtimeStore, room_id: str) -> schemas.RoomRecord:
    # Exiting an empty room still writes count 0 / free
    return _step_occupancy(store, room_id, -1)


def _update_existing(store: RealtimeStore, room_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    def apply(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if current is None:
            raise RoomNotFound(room_id)
        return {**current, **fields}

    return store.transaction(room_path(room_id), apply)


def schedule_class(store: RealtimeStore, room_id: str, subject: str, faculty: str, time: str) -> schemas.RoomRecord:
    if not (subject or "").strip() or not (time or "").strip():
        raise ValidationFailed(SCHEDULE_FIELDS_REQUIRED)
    value = _update_existing(
        store,
        room_id,
        {
            "nextClass": schemas.NextClass.faculty_coming.value,
            "subject": subject,
            "faculty": faculty or "",
            "nextClassTime": time,
        },
    )
    logger.info("Scheduled %r at %r in room %s", subject, time, room_id)
    return schemas.RoomRecord.from_store(value)


def clear_scheduled_class(store: RealtimeStore, room_id: str) -> schemas.RoomRecord:
    value = _update_existing(store, room_id, no_class_fields())
    logger.info("Cleared scheduled class in room %s", room_id)
    return schemas.RoomRecord.from_store(value)


def seed_rooms(store: RealtimeStore, room_ids: Optional[List[str]] = None, replace: bool = False) -> int:
    """Write the default record to every seed id.

    Only the listed paths are overwritten unless ``replace`` is set, in which
    case the whole collection is replaced by the seed rooms.
    """
    ids = list(room_ids or SEED_ROOM_IDS)
    rooms = {room_id: default_record() for room_id in ids}
    if replace:
        store.set(settings.collection, rooms)
    else:
        store.update(settings.collection, rooms)
    logger.info("Seeded %d rooms into %s (replace=%s)", len(ids), settings.collection, replace)
    return len(ids)
