"""Yearly report schemas"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class YearlyReportCreate(BaseModel):
    year: int = Field(..., ge=1900, le=2100)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    document_url: Optional[str] = Field(None, max_length=500)


class YearlyReportUpdate(BaseModel):
    """Partial update; omitted fields are left untouched"""
    year: Optional[int] = Field(None, ge=1900, le=2100)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    document_url: Optional[str] = Field(None, max_length=500)


class YearlyReportResponse(BaseModel):
    id: int
    year: int
    title: str
    description: Optional[str]
    document_url: Optional[str]
    status: str
    published_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
