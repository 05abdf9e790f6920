import logging
from datetime import datetime
from io import BytesIO

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from campus_monitor.core.config import settings
from campus_monitor.services import rooms as room_svc
from campus_monitor.services.exporter import build_rooms_csv, build_rooms_excel
from campus_monitor.services.store import RealtimeStore, get_store

router = APIRouter(prefix="/rooms", tags=["export"])
logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}


@router.get("/export", summary="Export the current occupancy of every room")
def export_rooms(fmt: str = Query("xlsx", description="xlsx or csv"), store: RealtimeStore = Depends(get_store)):
    if fmt not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="fmt must be xlsx|csv")
    rooms = room_svc.decode_rooms(store.get(settings.collection))
    logger.info("Export %d rooms as %s", len(rooms), fmt)
    buf: BytesIO = build_rooms_excel(rooms) if fmt == "xlsx" else build_rooms_csv(rooms)
    filename = f"Classrooms_{datetime.now():%Y%m%d_%H%M}.{fmt}"
    return StreamingResponse(
        buf,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
