"""News article model"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Index, CheckConstraint

from wateradmin.core.database import Base
from wateradmin.core.timeutils import utcnow


class News(Base):
    """Public news article; mutations are tracked in the activity log"""

    __tablename__ = "news"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    excerpt = Column(Text)
    content = Column(Text, nullable=False)
    status = Column(String(20), default="draft", nullable=False)
    published_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_news_status', 'status'),
        CheckConstraint("status IN ('draft', 'published', 'archived')", name='chk_news_status'),
    )

    def __repr__(self):
        return f"<News(id={self.id}, slug='{self.slug}', status='{self.status}')>"
