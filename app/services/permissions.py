"""Access checks for website data."""
import logging
import uuid

from sqlalchemy.orm import Session

from app.models.user import User
from app.models.website import Website

logger = logging.getLogger(__name__)


def can_view_website(user: User, website_id: uuid.UUID, db: Session) -> bool:
    """Admins can view every website; other users only the websites they own."""
    if user.is_admin:
        return True

    website = db.query(Website).filter(Website.id == website_id).first()
    if not website:
        logger.info(f"Website {website_id} not found for user {user.id}")
        return False

    return website.user_id == user.id
