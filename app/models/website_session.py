import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base


class WebsiteSession(Base):
    """A visitor's device/location fingerprint; one per visitor per website."""
    __tablename__ = "sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid(as_uuid=True), ForeignKey("websites.id"), nullable=False, index=True)

    browser = Column(String, nullable=True)  # browser code: chrome, firefox, crios, ...
    os = Column(String, nullable=True)  # Mac OS, Windows 10, Android OS, ...
    device = Column(String, nullable=True)  # desktop, laptop, mobile, tablet
    screen = Column(String, nullable=True)  # 1920x1080
    language = Column(String, nullable=True)  # en-US
    country = Column(String(2), nullable=True)  # ISO 3166-1 alpha-2
    subdivision1 = Column(String, nullable=True)  # region, e.g. US-CA
    city = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    website = relationship("Website", back_populates="sessions")
    events = relationship("WebsiteEvent", back_populates="session", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<WebsiteSession {self.id} {self.os}/{self.browser}/{self.country}>"
