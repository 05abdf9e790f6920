"""Room List View and Room Detail View.

A view owns exactly one store subscription: ``mount()`` acquires it and
``unmount()`` releases it (a view is also a context manager). The snapshot
callback replaces the view's single in-memory copy of the data and then calls
``on_change``; ``render()`` derives everything else from that copy on every
call. Faculty verification and form state are view-local and are lost when
the view is thrown away.
"""
import logging
from typing import Callable, List, Optional

from campus_monitor import schemas
from campus_monitor.core.config import settings
from campus_monitor.core.security import check_faculty_code
from campus_monitor.services import rooms
from campus_monitor.services.store import RealtimeStore, Snapshot, Subscription

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

FORM_ALIASES = {"facultyName": "faculty_name"}


class FacultyLocked(PermissionError):
    pass


class _View:
    def __init__(self, store: RealtimeStore, on_change: Optional[Callable[["_View"], None]] = None):
        self.store = store
        self.on_change = on_change
        self._subscription: Optional[Subscription] = None

    @property
    def path(self) -> Optional[str]:
        raise NotImplementedError

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    def mount(self):
        if self._subscription is None and self.path is not None:
            self._subscription = self.store.subscribe(self.path, self._on_snapshot)
        return self

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def __enter__(self):
        return self.mount()

    def __exit__(self, *exc):
        self.unmount()

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self.apply_snapshot(snapshot)
        if self.on_change is not None:
            self.on_change(self)

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        raise NotImplementedError


class RoomListView(_View):
    def __init__(self, store: RealtimeStore, on_change=None):
        super().__init__(store, on_change)
        self.rooms: List[schemas.Room] = []
        self.loading = True
        self.show_add_form = False
        self.new_room_id = ""

    @property
    def path(self) -> str:
        return settings.collection

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        self.rooms = rooms.decode_rooms(snapshot.value)
        self.loading = False

    @property
    def total(self) -> int:
        return len(self.rooms)

    @property
    def occupied(self) -> int:
        return rooms.occupied_count(self.rooms)

    @property
    def free(self) -> int:
        return self.total - self.occupied

    def toggle_add_form(self) -> None:
        self.show_add_form = not self.show_add_form

    def add_room(self, room_id: Optional[str] = None) -> schemas.Room:
        room = rooms.create_room(self.store, self.new_room_id if room_id is None else room_id)
        self.new_room_id = ""
        self.show_add_form = False
        return room

    def delete_room(self, room_id: str, confirm: Confirm) -> bool:
        room_id = rooms.check_room_id(room_id)
        if not confirm(rooms.list_delete_prompt(room_id)):
            return False
        rooms.delete_room(self.store, room_id)
        return True

    def render(self) -> schemas.ListViewState:
        # Snapshots may land from another thread; render from one copy
        current = self.rooms
        return schemas.ListViewState(
            loading=self.loading,
            stats=rooms.dashboard_stats(current),
            rooms=[rooms.room_card(r) for r in current],
            show_add_form=self.show_add_form,
            new_room_id=self.new_room_id,
        )


class RoomDetailView(_View):
    def __init__(self, store: RealtimeStore, room_id: Optional[str], on_change=None, access_code: Optional[str] = None):
        super().__init__(store, on_change)
        self.room_id = room_id or None
        self.access_code = access_code
        self.room: Optional[schemas.RoomRecord] = None
        self.loaded = False
        self.verified = False
        self.show_panel = False
        self.form = schemas.ScheduleForm()

    @property
    def path(self) -> Optional[str]:
        return rooms.room_path(self.room_id) if self.room_id else None

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        self.room = schemas.RoomRecord.from_store(snapshot.value) if snapshot.exists() else None
        self.loaded = True

    def unmount(self) -> None:
        super().unmount()
        self.logout()
        self.form = schemas.ScheduleForm()

    @property
    def state(self) -> schemas.DetailState:
        if not self.room_id:
            return schemas.DetailState.missing_identifier
        if not self.loaded:
            return schemas.DetailState.loading
        if self.room is None:
            return schemas.DetailState.not_found
        return schemas.DetailState.ready

    def _require_room(self) -> str:
        if self.state != schemas.DetailState.ready:
            raise rooms.RoomNotFound(self.room_id or "")
        return self.room_id

    # ---------------------- Student actions ----------------------

    def enter(self) -> schemas.RoomRecord:
        return rooms.enter_room(self.store, self._require_room())

    def exit(self) -> schemas.RoomRecord:
        return rooms.exit_room(self.store, self._require_room())

    # ---------------------- Faculty panel ----------------------

    def verify(self, code: str) -> bool:
        if not check_faculty_code(code, self.access_code):
            logger.info("Rejected faculty access code for room %s", self.room_id)
            return False
        self.verified = True
        self.show_panel = True
        return True

    def logout(self) -> None:
        self.verified = False
        self.show_panel = False

    def toggle_panel(self) -> None:
        if not self.verified:
            raise FacultyLocked("Faculty access required")
        self.show_panel = not self.show_panel

    def update_form(self, **fields) -> schemas.ScheduleForm:
        values = self.form.model_dump()
        for name, value in fields.items():
            name = FORM_ALIASES.get(name, name)
            if name in values and value is not None:
                values[name] = str(value)
        self.form = schemas.ScheduleForm(**values)
        return self.form

    def schedule(self) -> str:
        if not self.verified:
            raise FacultyLocked("Faculty access required")
        rooms.schedule_class(self.store, self._require_room(), self.form.subject, self.form.faculty_name, self.form.time)
        self.show_panel = False
        self.form = schemas.ScheduleForm()
        return rooms.CLASS_SCHEDULED

    def clear_schedule(self) -> str:
        if not self.verified:
            raise FacultyLocked("Faculty access required")
        rooms.clear_scheduled_class(self.store, self._require_room())
        return rooms.CLASS_CLEARED

    # ---------------------- Room ----------------------

    def delete_room(self, confirm: Confirm) -> bool:
        room_id = self._require_room()
        if not confirm(rooms.detail_delete_prompt(room_id)):
            return False
        rooms.delete_room(self.store, room_id)
        return True

    def render(self) -> schemas.DetailViewState:
        state = self.state
        room = self.room if state == schemas.DetailState.ready else None
        if state == schemas.DetailState.ready and room is None:
            state = schemas.DetailState.not_found
        return schemas.DetailViewState(
            room_id=self.room_id,
            state=state,
            room=room,
            status=rooms.detail_status(room) if room else None,
            upcoming=rooms.upcoming_class(room) if room else None,
            faculty=schemas.FacultyPanelState(
                verified=self.verified,
                show_panel=self.show_panel,
                can_clear=bool(room and room.has_upcoming_class),
                form=self.form,
            ),
        )
