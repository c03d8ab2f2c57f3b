from typing import Optional

from fastapi import APIRouter, Depends, Query

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear
from schoolapi.services import reports

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/class-performance")
async def class_performance(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                            conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    return envelope("Class performance report generated", report=reports.class_performance(admin_id, year))


@router.get("/subject-performance")
async def subject_performance(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                              admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    return envelope("Subject performance report generated",
                    report=reports.subject_performance(admin_id, year, class_id))


@router.get("/top-performers")
async def top_performers(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                         limit: int = Query(10, ge=1, le=100), admin_id: int = Depends(get_admin_id),
                         conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    return envelope("Top performers retrieved", report=reports.top_performers(admin_id, year, class_id, limit))


@router.get("/attendance-summary")
async def attendance_summary(academic_year_id: Optional[int] = None, start: Optional[str] = None,
                             end: Optional[str] = None, class_id: Optional[int] = None,
                             admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    return envelope("Attendance summary generated",
                    report=reports.attendance_summary(admin_id, year, start, end, class_id))


@router.get("/financial-overview")
async def financial_overview(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                             conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    return envelope("Financial overview generated", report=reports.financial_overview(admin_id, year))


@router.get("/dashboard")
async def dashboard(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_current()
    return envelope("Dashboard stats retrieved", stats=reports.dashboard(admin_id, year))
