import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.types import TypeDecorator, CHAR

from ..database import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses CHAR(36) to store UUIDs as strings, compatible with all backends
    including SQLite.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


class Competitor(Base):
    __tablename__ = "competitors"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=True)
    website = Column(String(2048), nullable=False)

    # pending | processing | completed | error
    research_status = Column(String(32), nullable=False, default="pending", index=True)
    last_error = Column(String(64), nullable=True)

    # JSON strings (compatible with SQLite & PG)
    intel_json = Column(Text, nullable=True)
    branding_json = Column(Text, nullable=True)
    raw_content_json = Column(Text, nullable=True)
    logo_url = Column(String(2048), nullable=True)

    last_researched_at = Column(DateTime, nullable=True)  # set only on completed
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
