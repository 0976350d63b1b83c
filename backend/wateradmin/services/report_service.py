"""Yearly report service - plain data access for a tracked entity"""

from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from wateradmin.models.report import YearlyReport
from wateradmin.schemas.report import YearlyReportCreate, YearlyReportUpdate
from wateradmin.core.exceptions import ResourceNotFoundError
from wateradmin.core.timeutils import utcnow

logger = logging.getLogger(__name__)


class ReportService:
    """CRUD and publishing for yearly reports"""

    @staticmethod
    def list_reports(db: Session, status: Optional[str] = None) -> List[YearlyReport]:
        query = db.query(YearlyReport)
        if status:
            query = query.filter(YearlyReport.status == status)
        return query.order_by(YearlyReport.year.desc(), YearlyReport.id.desc()).all()

    @staticmethod
    def get_report(db: Session, report_id: int) -> YearlyReport:
        report = db.query(YearlyReport).filter(YearlyReport.id == report_id).first()
        if not report:
            raise ResourceNotFoundError("Yearly report")
        return report

    @staticmethod
    def create_report(db: Session, data: YearlyReportCreate) -> YearlyReport:
        report = YearlyReport(**data.model_dump(), status="draft")
        db.add(report)
        db.commit()
        db.refresh(report)
        logger.info(f"Created yearly report {report.id} ({report.year})")
        return report

    @staticmethod
    def update_report(db: Session, report_id: int, data: YearlyReportUpdate) -> YearlyReport:
        report = ReportService.get_report(db, report_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(report, key, value)
        db.commit()
        db.refresh(report)
        return report

    @staticmethod
    def publish(db: Session, report_id: int) -> YearlyReport:
        report = ReportService.get_report(db, report_id)
        if report.status != "published":
            report.status = "published"
            report.published_at = utcnow()
            db.commit()
            db.refresh(report)
        return report

    @staticmethod
    def unpublish(db: Session, report_id: int) -> YearlyReport:
        report = ReportService.get_report(db, report_id)
        if report.status != "draft":
            report.status = "draft"
            report.published_at = None
            db.commit()
            db.refresh(report)
        return report

    @staticmethod
    def delete_report(db: Session, report_id: int) -> None:
        report = ReportService.get_report(db, report_id)
        db.delete(report)
        db.commit()
        logger.info(f"Deleted yearly report {report_id}")


report_service = ReportService()
