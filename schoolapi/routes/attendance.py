import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Attendance, Enrollment, Subject
from schoolapi.schemas import AttendanceMarkRequest

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


@router.post("", status_code=201)
async def mark_attendance(req: AttendanceMarkRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    enrollment = Enrollment(conn).active_for(req.student_id, year["id"])
    if enrollment is None:
        raise HTTPException(status_code=400, detail="Student not enrolled for current academic year")
    Subject(conn, admin_id).get_or_404(req.subject_id)

    attendance = Attendance(conn, admin_id)
    attendance_id = attendance.mark(
        req.student_id, req.subject_id, enrollment["class_id"], year["id"],
        req.date.isoformat(), req.status, req.remarks,
    )
    streak, escalated = attendance.track_absences(req.student_id, req.subject_id, req.date.isoformat(), year)
    conn.commit()
    return envelope("Attendance marked successfully", attendance_id=attendance_id,
                    absence_streak=streak, escalated=escalated)


@router.get("/student/{student_id}")
async def get_student_attendance(student_id: int, subject_id: Optional[int] = None, start: Optional[str] = None,
                                 end: Optional[str] = None, admin_id: int = Depends(get_admin_id),
                                 conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_current()
    records = Attendance(conn, admin_id).for_student(
        student_id, year["id"] if year else None, subject_id, start, end
    )
    return envelope("Attendance retrieved", attendance=records)


@router.get("/student/{student_id}/stats")
async def get_attendance_stats(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_current()
    stats = Attendance(conn, admin_id).stats(student_id, year["id"] if year else None)
    return envelope("Attendance stats retrieved", stats=stats)


@router.get("/class/{class_id}")
async def get_class_attendance(class_id: int, date: Optional[str] = None, subject_id: Optional[int] = None,
                               admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    date = date or dt.date.today().isoformat()
    records = Attendance(conn, admin_id).for_class(class_id, year["id"], date, subject_id)
    return envelope("Class attendance retrieved", date=date, attendance=records)


@router.get("/strikes")
async def get_attendance_strikes(escalated: bool = False, admin_id: int = Depends(get_admin_id),
                                 conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    return envelope("Attendance strikes retrieved", strikes=Attendance(conn, admin_id).strikes(year["id"], escalated))
