import pytest

from campus_monitor import schemas
from campus_monitor.services import rooms

DEFAULT = {
    "occupancyCount": 0,
    "currentStatus": "free",
    "nextClass": "no_class",
    "subject": "-",
    "faculty": "-",
    "nextClassTime": "-",
}


def test_create_room_writes_default_record(store):
    room = rooms.create_room(store, "A101")
    assert room.id == "A101"
    assert store.get("classrooms/A101") == DEFAULT


def test_create_room_trims_id_and_rejects_blank(store):
    rooms.create_room(store, "  304-A ")
    assert store.get("classrooms/304-A") == DEFAULT
    for blank in ("", "   ", None):
        with pytest.raises(rooms.ValidationFailed):
            rooms.create_room(store, blank)
    assert list(store.get("classrooms")) == ["304-A"]


def test_create_existing_room_silently_overwrites(store):
    rooms.create_room(store, "A101")
    rooms.enter_room(store, "A101")
    rooms.create_room(store, "A101")
    assert store.get("classrooms/A101") == DEFAULT


@pytest.mark.parametrize("n", [0, 1, 2, 5])
def test_exit_after_n_enters_is_clamped(store, n):
    rooms.create_room(store, "A101")
    for _ in range(n):
        rooms.enter_room(store, "A101")
    record = rooms.exit_room(store, "A101")
    assert record.occupancy_count == max(n - 1, 0)
    assert store.get("classrooms/A101")["occupancyCount"] == max(n - 1, 0)


def test_status_follows_new_count(store):
    rooms.create_room(store, "A101")
    assert rooms.enter_room(store, "A101").current_status == "occupied"
    assert rooms.enter_room(store, "A101").current_status == "occupied"
    assert rooms.exit_room(store, "A101").current_status == "occupied"
    assert rooms.exit_room(store, "A101").current_status == "free"
    # Exiting an empty room still writes a free record
    record = rooms.exit_room(store, "A101")
    assert (record.occupancy_count, record.current_status) == (0, "free")


def test_occupancy_step_repairs_drifted_status(store):
    store.set("classrooms/A101", {**DEFAULT, "occupancyCount": 3, "currentStatus": "free"})
    record = rooms.exit_room(store, "A101")
    assert (record.occupancy_count, record.current_status) == (2, "occupied")


def test_enter_missing_room_raises(store):
    with pytest.raises(rooms.RoomNotFound, match="Room Z9 not found"):
        rooms.enter_room(store, "Z9")
    assert store.get("classrooms/Z9") is None


def test_schedule_class_writes_fields_verbatim(store):
    rooms.create_room(store, "A101")
    rooms.enter_room(store, "A101")
    record = rooms.schedule_class(store, "A101", "Physics", "", "2:00 PM")
    assert record.next_class == "faculty_coming"
    assert store.get("classrooms/A101") == {
        "occupancyCount": 1,
        "currentStatus": "occupied",
        "nextClass": "faculty_coming",
        "subject": "Physics",
        "faculty": "",
        "nextClassTime": "2:00 PM",
    }


@pytest.mark.parametrize("subject,time", [("", "2:00 PM"), ("Physics", ""), ("  ", "2:00 PM"), ("Physics", " ")])
def test_schedule_class_requires_subject_and_time(store, subject, time):
    rooms.create_room(store, "A101")
    with pytest.raises(rooms.ValidationFailed, match=rooms.SCHEDULE_FIELDS_REQUIRED):
        rooms.schedule_class(store, "A101", subject, "Dr. Rao", time)
    assert store.get("classrooms/A101") == DEFAULT


def test_clear_scheduled_class_resets_only_schedule_fields(store):
    rooms.create_room(store, "A101")
    rooms.enter_room(store, "A101")
    rooms.enter_room(store, "A101")
    rooms.schedule_class(store, "A101", "Physics", "Dr. Rao", "2:00 PM")
    rooms.clear_scheduled_class(store, "A101")
    assert store.get("classrooms/A101") == {**DEFAULT, "occupancyCount": 2, "currentStatus": "occupied"}


@pytest.mark.parametrize("room_id", ["", "   ", "/", "A101/", "A1/02"])
def test_delete_room_refuses_blank_or_nested_ids(store, room_id):
    rooms.create_room(store, "A101")
    rooms.create_room(store, "A102")
    with pytest.raises(rooms.ValidationFailed):
        rooms.delete_room(store, room_id)
    assert sorted(store.get("classrooms")) == ["A101", "A102"]


def test_create_room_refuses_slash_in_id(store):
    with pytest.raises(rooms.ValidationFailed, match="Invalid room number"):
        rooms.create_room(store, "A101/")
    assert store.get("classrooms") is None


def test_schedule_and_clear_missing_room_raise(store):
    with pytest.raises(rooms.RoomNotFound, match="Room GHOST not found"):
        rooms.schedule_class(store, "GHOST", "Physics", "", "2:00 PM")
    with pytest.raises(rooms.RoomNotFound):
        rooms.clear_scheduled_class(store, "GHOST")
    assert store.get("classrooms") is None


def test_deleted_room_subscription_has_no_data(store):
    rooms.create_room(store, "A101")
    rooms.delete_room(store, "A101")
    seen = []
    with store.subscribe(rooms.room_path("A101"), seen.append):
        pass
    assert seen[0].value is None


def test_decode_fills_missing_fields():
    room = rooms.decode_room("A101", {"occupancyCount": 3, "subject": None})
    assert room.id == "A101"
    assert room.occupancy_count == 3
    assert room.current_status == "free"
    assert room.subject == "-"
    assert rooms.decode_rooms(None) == []


def test_stats_count_occupied_by_occupancy():
    decoded = rooms.decode_rooms({
        "A101": {"occupancyCount": 2, "currentStatus": "occupied"},
        "A102": {"occupancyCount": 0, "currentStatus": "occupied"},
        "A103": {},
    })
    assert rooms.dashboard_stats(decoded) == schemas.DashboardStats(total=3, occupied=1, free=2)


def test_card_status():
    card = rooms.card_status
    assert card(schemas.RoomRecord(occupancyCount=2)) == schemas.StatusBadge(tone="occupied", text="Occupied")
    # Stored status drives the tone, the count drives the text
    assert card(schemas.RoomRecord(currentStatus="occupied")) == schemas.StatusBadge(tone="occupied", text="Free")
    assert card(schemas.RoomRecord(nextClass="faculty_coming")) == schemas.StatusBadge(tone="upcoming", text="Free")
    assert card(schemas.RoomRecord()) == schemas.StatusBadge(tone="free", text="Free")


def test_detail_status():
    detail = rooms.detail_status
    assert detail(schemas.RoomRecord(currentStatus="occupied", nextClass="faculty_coming")).text == "Occupied"
    assert detail(schemas.RoomRecord(nextClass="faculty_coming")).text == "Upcoming Class"
    assert detail(schemas.RoomRecord(occupancyCount=3)).text == "Free"


def test_seed_ids():
    assert len(rooms.SEED_ROOM_IDS) == 30
    assert rooms.SEED_ROOM_IDS[:2] == ["A101", "A102"]
    assert rooms.SEED_ROOM_IDS[9] == "A110"
    assert rooms.SEED_ROOM_IDS[10] == "A201"
    assert rooms.SEED_ROOM_IDS[-1] == "A310"


def test_seed_overwrites_only_seed_paths(store):
    rooms.create_room(store, "LAB-1")
    store.set("classrooms/A101", {**DEFAULT, "occupancyCount": 9})
    assert rooms.seed_rooms(store) == 30
    data = store.get("classrooms")
    assert len(data) == 31
    assert data["A101"] == DEFAULT
    assert "LAB-1" in data


def test_seed_replace_drops_other_rooms(store):
    rooms.create_room(store, "LAB-1")
    rooms.seed_rooms(store, replace=True)
    data = store.get("classrooms")
    assert sorted(data) == sorted(rooms.SEED_ROOM_IDS)
    assert all(record == DEFAULT for record in data.values())
