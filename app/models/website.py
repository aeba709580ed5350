import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.db.session import Base


class Website(Base):
    __tablename__ = "websites"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    domain = Column(String, nullable=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="websites")
    sessions = relationship("WebsiteSession", back_populates="website", cascade="all, delete-orphan")
    events = relationship("WebsiteEvent", back_populates="website", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Website {self.name} ({self.domain})>"
