from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class RoomStatus(str, Enum):
    free = "free"
    occupied = "occupied"


class NextClass(str, Enum):
    no_class = "no_class"
    faculty_coming = "faculty_coming"


class StatusTone(str, Enum):
    occupied = "occupied"
    upcoming = "upcoming"
    free = "free"


class DetailState(str, Enum):
    missing_identifier = "missing_identifier"
    loading = "loading"
    not_found = "not_found"
    ready = "ready"


class RoomRecord(BaseModel):
    """Full field set of one room as stored at ``classrooms/<roomId>``.

    Decoding fills every missing field with its default, so a partially
    written record still renders. ``currentStatus`` and ``nextClass`` are kept
    as plain strings: they are display inputs written by other clients too.
    """

    occupancy_count: int = Field(0, alias="occupancyCount")
    current_status: str = Field(RoomStatus.free.value, alias="currentStatus")
    next_class: str = Field(NextClass.no_class.value, alias="nextClass")
    subject: str = "-"
    faculty: str = "-"
    next_class_time: str = Field("-", alias="nextClassTime")

    class Config:
        populate_by_name = True

    @field_validator("occupancy_count", mode="before")
    @classmethod
    def coerce_count(cls, v):
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v

    @classmethod
    def from_store(cls, value: Optional[Dict[str, Any]]) -> "RoomRecord":
        return cls.model_validate({k: v for k, v in (value or {}).items() if v is not None})

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    @property
    def has_upcoming_class(self) -> bool:
        return self.next_class == NextClass.faculty_coming.value


class Room(RoomRecord):
    id: str


class StatusBadge(BaseModel):
    tone: StatusTone
    text: str


class UpcomingClass(BaseModel):
    subject: str
    faculty: str
    time: str


class RoomCard(BaseModel):
    room: Room
    status: StatusBadge
    upcoming: Optional[UpcomingClass] = None


class DashboardStats(BaseModel):
    total: int
    free: int
    occupied: int


class ListViewState(BaseModel):
    loading: bool
    stats: DashboardStats
    rooms: List[RoomCard]
    show_add_form: bool = Field(False, alias="showAddForm")
    new_room_id: str = Field("", alias="newRoomId")

    class Config:
        populate_by_name = True


class ScheduleForm(BaseModel):
    subject: str = ""
    faculty_name: str = Field("", alias="facultyName")
    time: str = ""

    class Config:
        populate_by_name = True


class FacultyPanelState(BaseModel):
    verified: bool = False
    show_panel: bool = Field(False, alias="showPanel")
    can_clear: bool = Field(False, alias="canClear")
    form: ScheduleForm = Field(default_factory=ScheduleForm)

    class Config:
        populate_by_name = True


class DetailViewState(BaseModel):
    room_id: Optional[str] = Field(None, alias="roomId")
    state: DetailState
    room: Optional[RoomRecord] = None
    status: Optional[StatusBadge] = None
    upcoming: Optional[UpcomingClass] = None
    faculty: FacultyPanelState = Field(default_factory=FacultyPanelState)

    class Config:
        populate_by_name = True


class RoomCreate(BaseModel):
    room_id: str = Field(..., alias="roomId", description="Room number, e.g. 304-A")

    class Config:
        populate_by_name = True


class FacultyVerifyRequest(BaseModel):
    code: str


class FacultyVerifyResponse(BaseModel):
    verified: bool


class ScheduleClassRequest(ScheduleForm):
    pass


class DeleteResponse(BaseModel):
    room_id: str = Field(..., alias="roomId")
    navigate: str = "/"

    class Config:
        populate_by_name = True
