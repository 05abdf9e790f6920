from io import BytesIO
from typing import List

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from campus_monitor import schemas
from campus_monitor.services import rooms as room_svc

SHEET_NAME = "Classrooms"

COLUMNS = [
    "room_id",
    "status",
    "occupancy_count",
    "current_status",
    "next_class",
    "subject",
    "faculty",
    "next_class_time",
]

TONE_FILLS = {
    schemas.StatusTone.occupied.value: "FFC7CE",  # red
    schemas.StatusTone.upcoming.value: "FFEB9C",  # amber
    schemas.StatusTone.free.value: "C6EFCE",  # green
}


def rooms_frame(rooms: List[schemas.Room]) -> pd.DataFrame:
    rows = []
    for room in rooms:
        badge = room_svc.card_status(room)
        rows.append({
            "room_id": room.id,
            "status": badge.text,
            "tone": badge.tone.value,
            "occupancy_count": room.occupancy_count,
            "current_status": room.current_status,
            "next_class": room.next_class,
            "subject": room.subject,
            "faculty": room.faculty,
            "next_class_time": room.next_class_time,
        })
    return pd.DataFrame(rows, columns=COLUMNS + ["tone"])


def _format_sheet(ws, tones: List[str]) -> None:
    headers = {ws.cell(row=1, column=c).value: c for c in range(1, ws.max_column + 1)}
    bold_font = Font(bold=True)
    for c in headers.values():
        ws.cell(row=1, column=c).font = bold_font
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = ws.dimensions
    for h, c in headers.items():
        width = 14
        if h in ("subject", "faculty"):
            width = 24
        if h == "next_class_time":
            width = 20
        ws.column_dimensions[get_column_letter(c)].width = width
    col_status = headers.get("status")
    if not col_status:
        return
    for r, tone in enumerate(tones, start=2):
        color = TONE_FILLS.get(tone)
        if color:
            ws.cell(row=r, column=col_status).fill = PatternFill(start_color=color, end_color=color, fill_type="solid")


def build_rooms_excel(rooms: List[schemas.Room]) -> BytesIO:
    df = rooms_frame(rooms)
    tones = df["tone"].tolist()
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df[COLUMNS].to_excel(writer, sheet_name=SHEET_NAME, index=False)
        _format_sheet(writer.sheets[SHEET_NAME], tones)
    buf.seek(0)
    return buf


def build_rooms_csv(rooms: List[schemas.Room]) -> BytesIO:
    buf = BytesIO()
    buf.write(rooms_frame(rooms)[COLUMNS].to_csv(index=False).encode("utf-8"))
    buf.seek(0)
    return buf
