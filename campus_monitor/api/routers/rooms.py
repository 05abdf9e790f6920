import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from campus_monitor import schemas
from campus_monitor.core.security import check_faculty_code
from campus_monitor.services import rooms as room_svc
from campus_monitor.services.store import RealtimeStore, get_store
from campus_monitor.services.views import RoomDetailView, RoomListView

router = APIRouter(tags=["rooms"])
logger = logging.getLogger(__name__)


# --- Views ---
@router.get("/", response_model=schemas.ListViewState, summary="Room list view: stats and room cards")
def list_view(store: RealtimeStore = Depends(get_store)):
    with RoomListView(store) as view:
        return view.render()


@router.get("/room/", response_model=schemas.DetailViewState, summary="Room detail view without a room id")
def detail_view_missing_id(store: RealtimeStore = Depends(get_store)):
    return RoomDetailView(store, None).render()


@router.get("/room/{room_id}", response_model=schemas.DetailViewState, summary="Room detail view")
def detail_view(room_id: str, store: RealtimeStore = Depends(get_store)):
    try:
        with RoomDetailView(store, room_id) as view:
            return view.render()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- Room collection ---
@router.post("/rooms", response_model=schemas.Room, status_code=status.HTTP_201_CREATED, summary="Create a room with default fields")
def create_room(req: schemas.RoomCreate, store: RealtimeStore = Depends(get_store)):
    try:
        return room_svc.create_room(store, req.room_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/rooms/{room_id}", response_model=schemas.DeleteResponse, summary="Delete a room (from the list view)")
def delete_room_from_list(room_id: str, confirm: bool = Query(False), store: RealtimeStore = Depends(get_store)):
    return _delete(store, room_id, confirm, room_svc.list_delete_prompt(room_id))


# --- Single room ---
@router.delete("/room/{room_id}", response_model=schemas.DeleteResponse, summary="Delete a room (from its detail view)")
def delete_room_from_detail(room_id: str, confirm: bool = Query(False), store: RealtimeStore = Depends(get_store)):
    return _delete(store, room_id, confirm, room_svc.detail_delete_prompt(room_id))


def _delete(store: RealtimeStore, room_id: str, confirm: bool, prompt: str) -> schemas.DeleteResponse:
    if not confirm:
        raise HTTPException(status_code=400, detail=f"{prompt} Repeat with confirm=true.")
    try:
        room_svc.delete_room(store, room_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return schemas.DeleteResponse(room_id=room_id)


@router.post("/room/{room_id}/enter", response_model=schemas.RoomRecord, summary="Student enters: occupancy + 1")
def enter_room(room_id: str, store: RealtimeStore = Depends(get_store)):
    try:
        return room_svc.enter_room(store, room_id)
    except room_svc.RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/room/{room_id}/exit", response_model=schemas.RoomRecord, summary="Student exits: occupancy - 1, floored at 0")
def exit_room(room_id: str, store: RealtimeStore = Depends(get_store)):
    try:
        return room_svc.exit_room(store, room_id)
    except room_svc.RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/room/{room_id}/faculty/verify", response_model=schemas.FacultyVerifyResponse, summary="Check the faculty access code")
def verify_faculty(room_id: str, req: schemas.FacultyVerifyRequest):
    verified = check_faculty_code(req.code)
    if not verified:
        logger.info("Rejected faculty access code for room %s", room_id)
    return schemas.FacultyVerifyResponse(verified=verified)


@router.put("/room/{room_id}/schedule", response_model=schemas.RoomRecord, summary="Schedule the next class")
def schedule_class(room_id: str, req: schemas.ScheduleClassRequest, store: RealtimeStore = Depends(get_store)):
    try:
        return room_svc.schedule_class(store, room_id, req.subject, req.faculty_name, req.time)
    except room_svc.RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/room/{room_id}/schedule", response_model=schemas.RoomRecord, summary="Clear the scheduled class")
def clear_scheduled_class(room_id: str, store: RealtimeStore = Depends(get_store)):
    try:
        return room_svc.clear_scheduled_class(store, room_id)
    except room_svc.RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
