import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship
from app.db.session import Base


class EventType(int, enum.Enum):
    PAGEVIEW = 1
    CUSTOM_EVENT = 2


class WebsiteEvent(Base):
    __tablename__ = "website_events"
    __table_args__ = (
        Index("ix_website_events_website_id_created_at", "website_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid(as_uuid=True), ForeignKey("websites.id"), nullable=False)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("sessions.id"), nullable=False)
    visit_id = Column(Uuid(as_uuid=True), nullable=False)  # groups the events of one visit
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    url_path = Column(String, nullable=True)
    url_query = Column(String, nullable=True)
    referrer_domain = Column(String, nullable=True)
    page_title = Column(String, nullable=True)
    hostname = Column(String, nullable=True)

    event_type = Column(Integer, default=EventType.PAGEVIEW.value, nullable=False)
    event_name = Column(String, nullable=True)  # custom events only
    tag = Column(String, nullable=True)

    # Relationships
    website = relationship("Website", back_populates="events")
    session = relationship("WebsiteSession", back_populates="events")

    def __repr__(self):
        return f"<WebsiteEvent {self.event_type}: {self.url_path or self.event_name}>"
