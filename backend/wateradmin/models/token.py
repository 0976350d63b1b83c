"""Access token persistence model."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from wateradmin.core.database import Base
from wateradmin.core.timeutils import utcnow

FULL_SCOPE = "*"


class AccessToken(Base):
    """Opaque bearer token; only the SHA-256 of its secret is kept."""

    __tablename__ = "access_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    scope = Column(String(255), default=FULL_SCOPE, nullable=False)
    secret_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="tokens")

    __table_args__ = (
        Index("idx_access_tokens_user", "user_id"),
        Index("idx_access_tokens_expires_at", "expires_at"),
    )

    def __repr__(self):
        return f"<AccessToken(id={self.id}, user_id={self.user_id}, name='{self.name}')>"
