"""Yearly report model"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Index, CheckConstraint

from wateradmin.core.database import Base
from wateradmin.core.timeutils import utcnow, isoformat_utc

REPORT_STATUSES = ("draft", "published")


class YearlyReport(Base):
    """Yearly report with an optional attached document"""

    __tablename__ = "yearly_reports"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    document_url = Column(String(500))
    status = Column(String(20), default="draft", nullable=False)
    published_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_yearly_reports_year', 'year'),
        Index('idx_yearly_reports_status', 'status'),
        CheckConstraint("status IN ('draft', 'published')", name='chk_yearly_report_status'),
    )

    def __repr__(self):
        return f"<YearlyReport(id={self.id}, year={self.year}, status='{self.status}')>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "year": self.year,
            "title": self.title,
            "description": self.description,
            "document_url": self.document_url,
            "status": self.status,
            "published_at": isoformat_utc(self.published_at),
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }
