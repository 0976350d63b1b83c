"""Yearly report routes (staff and admin)"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from wateradmin.core.database import get_db
from wateradmin.schemas.report import YearlyReportCreate, YearlyReportUpdate, YearlyReportResponse
from wateradmin.services.report_service import report_service
from wateradmin.api.deps import get_current_staff_user
from wateradmin.models.user import User

router = APIRouter()


@router.get("/yearly", response_model=List[YearlyReportResponse])
def list_yearly_reports(
    report_status: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    """List yearly reports, newest year first"""
    return report_service.list_reports(db, status=report_status)


@router.post("/yearly", response_model=YearlyReportResponse, status_code=status.HTTP_201_CREATED)
def create_yearly_report(
    report_data: YearlyReportCreate,
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    """
    Create a draft yearly report

    Args:
        report_data: Year, title and optional description/document
        current_user: Current staff or admin user
        db: Database session

    Returns:
        Created report
    """
    return report_service.create_report(db, report_data)


@router.get("/yearly/{report_id}", response_model=YearlyReportResponse)
def get_yearly_report(
    report_id: int,
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    return report_service.get_report(db, report_id)


@router.put("/yearly/{report_id}", response_model=YearlyReportResponse)
def update_yearly_report(
    report_id: int,
    report_data: YearlyReportUpdate,
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    """Partially update a yearly report"""
    return report_service.update_report(db, report_id, report_data)


@router.post("/yearly/{report_id}/publish", response_model=YearlyReportResponse)
def publish_yearly_report(
    report_id: int,
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    return report_service.publish(db, report_id)


@router.post("/yearly/{report_id}/unpublish", response_model=YearlyReportResponse)
def unpublish_yearly_report(
    report_id: int,
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    return report_service.unpublish(db, report_id)


@router.delete("/yearly/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_yearly_report(
    report_id: int,
    current_user: User = Depends(get_current_staff_user),
    db: Session = Depends(get_db)
):
    """Delete a yearly report"""
    report_service.delete_report(db, report_id)
