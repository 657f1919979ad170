"""In-app notification model."""
from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from ngoconnect.models.base import BaseModel, enum_column_type
from ngoconnect.models.enums import NotificationCategory


class Notification(BaseModel):
    """Inbox entry for an organization or donor."""

    __tablename__ = "notifications"

    recipient_id = Column(String(128), nullable=False)
    category = Column(
        enum_column_type(NotificationCategory, "notification_category"),
        nullable=False,
    )
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(String(64), nullable=True)
    related_type = Column(String(32), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_notifications_recipient_read", "recipient_id", "is_read", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, category={self.category})>"
