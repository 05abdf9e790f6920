import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from campus_monitor.core.config import settings

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    logging.getLogger(__name__).info("Initializing database and creating tables if needed")
    # Register the mapped tables before create_all
    from campus_monitor import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
