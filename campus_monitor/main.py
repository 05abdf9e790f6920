from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST

from campus_monitor.api.routers import export, live, rooms
from campus_monitor.core.config import settings
from campus_monitor.core.database import init_db
from campus_monitor.core.logging_config import RequestIdMiddleware, setup_logging
from campus_monitor.core.monitoring import MetricsMiddleware, get_dashboard_stats, get_metrics

setup_logging(
    level=settings.log_level,
    to_file=settings.log_to_file,
    file_path=settings.log_file_path,
    max_bytes=settings.log_max_bytes,
    backup_count=settings.log_backup_count,
)

tags_metadata = [
    {"name": "rooms", "description": "Room list and room detail views, occupancy and class scheduling"},
    {"name": "live", "description": "WebSocket sessions pushing live view updates"},
    {"name": "export", "description": "Occupancy snapshot export (xlsx/csv)"},
]

app = FastAPI(
    title="Campus Classroom Monitor",
    description="Real-time classroom occupancy and scheduling dashboard",
    openapi_tags=tags_metadata,
    docs_url="/admin/docs",
    redoc_url="/admin/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(MetricsMiddleware)

init_db()

app.include_router(export.router)
app.include_router(rooms.router)
app.include_router(live.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


@app.get("/stats")
async def stats():
    """Per-endpoint request statistics."""
    return get_dashboard_stats()
