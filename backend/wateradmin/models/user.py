"""User model"""

from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.orm import relationship

from wateradmin.core.database import Base
from wateradmin.core.roles import UserRole, parse_role
from wateradmin.core.timeutils import utcnow, isoformat_utc


class User(Base):
    """User model for authentication and authorization"""

    __tablename__ = "users"
    __audit_exclude__ = ("password_hash",)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.USER.value, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    tokens = relationship(
        "AccessToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_users_role_email', 'role', 'email'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def role_display(self) -> str:
        role = parse_role(self.role)
        return role.display_name if role else "Unknown"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "role_display": self.role_display,
            "created_at": isoformat_utc(self.created_at),
        }
