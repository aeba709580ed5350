from app.models.user import User, UserRole
from app.models.website import Website
from app.models.website_session import WebsiteSession
from app.models.website_event import WebsiteEvent, EventType

__all__ = [
    "User",
    "UserRole",
    "Website",
    "WebsiteSession",
    "WebsiteEvent",
    "EventType",
]
