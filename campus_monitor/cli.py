"""Command line entry point.

  campus-monitor seed              write the 30 default rooms (A101..A310)
  campus-monitor seed --replace    replace the whole collection with them
  campus-monitor serve             run the dashboard service
"""
import logging
import sys

import click

from campus_monitor.core.config import settings
from campus_monitor.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Campus Classroom Monitor."""
    setup_logging(level=settings.log_level, to_file=False)


@cli.command()
@click.option("--replace", is_flag=True, help="Replace the whole collection instead of only the seed paths.")
def seed(replace):
    """Populate A101-A110, A201-A210 and A301-A310 with default records."""
    from campus_monitor.core.database import init_db
    from campus_monitor.services.rooms import SEED_ROOM_IDS, seed_rooms
    from campus_monitor.services.store import get_store

    logger.info("Initializing %s with classroom data...", settings.collection)
    try:
        init_db()
        count = seed_rooms(get_store(), replace=replace)
    except Exception:
        logger.exception("Error initializing classroom data")
        sys.exit(1)
    for floor in (1, 2, 3):
        ids = [r for r in SEED_ROOM_IDS if r.startswith(f"A{floor}")]
        logger.info("Floor %d: %s-%s (%d rooms)", floor, ids[0], ids[-1], len(ids))
    logger.info("Successfully initialized %d classrooms", count)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes.")
def serve(host, port, reload):
    """Run the dashboard with uvicorn."""
    import uvicorn

    uvicorn.run("campus_monitor.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
