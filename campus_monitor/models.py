from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String

from campus_monitor.core.database import Base


class Document(Base):
    """One record of the realtime store, addressed as ``<collection>/<key>``."""

    __tablename__ = "documents"
    collection = Column(String, primary_key=True)
    key = Column(String, primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
