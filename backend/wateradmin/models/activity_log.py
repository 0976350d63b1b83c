"""Activity log model for privileged actions."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship

from wateradmin.core.database import Base
from wateradmin.core.timeutils import utcnow, isoformat_utc


class ActivityLog(Base):
    """Append-only trail of session events and tracked-entity changes."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    role = Column(String(20), nullable=True)
    action = Column(String(20), nullable=False)
    table_name = Column(String(64), nullable=True)
    record_id = Column(Integer, nullable=True)
    ip_address = Column(String(45), nullable=True)
    location = Column(String(255), nullable=True)
    user_agent = Column(Text, nullable=True)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User")

    __table_args__ = (
        Index("idx_activity_logs_user_id", "user_id"),
        Index("idx_activity_logs_action", "action"),
        Index("idx_activity_logs_table_name", "table_name"),
        Index("idx_activity_logs_record_id", "record_id"),
        Index("idx_activity_logs_created_at", "created_at"),
        Index("idx_activity_logs_user_created", "user_id", "created_at"),
        Index("idx_activity_logs_table_record", "table_name", "record_id"),
    )

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, action='{self.action}', table='{self.table_name}', record={self.record_id})>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "role": self.role,
            "action": self.action,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "ip_address": self.ip_address,
            "location": self.location,
            "user_agent": self.user_agent,
            "old_data": self.old_data,
            "new_data": self.new_data,
            "created_at": isoformat_utc(self.created_at),
        }
