from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, SchoolClass, Teacher, Timetable
from schoolapi.models.timetable import group_by_day
from schoolapi.schemas import (
    ConflictCheckRequest,
    TimetableBulkRequest,
    TimetableEntryRequest,
    TimetableEntryUpdateRequest,
)

router = APIRouter(prefix="/api/timetable", tags=["timetable"])


def _schedule(entries):
    return envelope("Timetable retrieved", timetable=entries, grouped=group_by_day(entries))


@router.post("", status_code=201)
async def create_timetable_entry(req: TimetableEntryRequest, admin_id: int = Depends(get_admin_id),
                                 conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    entry_id = Timetable(conn, admin_id).create_entry(req.model_dump(), year["id"])
    conn.commit()
    return envelope("Timetable entry created successfully", entry_id=entry_id)


@router.post("/bulk")
async def bulk_create_timetable(req: TimetableBulkRequest, admin_id: int = Depends(get_admin_id),
                                conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    created, errors = Timetable(conn, admin_id).bulk_create([e.model_dump() for e in req.entries], year["id"])
    conn.commit()
    return envelope(f"Created {created} entries", created=created, errors=errors)


@router.post("/check-conflicts")
async def check_timetable_conflicts(req: ConflictCheckRequest, admin_id: int = Depends(get_admin_id),
                                    conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    conflicts = Timetable(conn, admin_id).conflicts(year["id"], req.class_id, req.teacher_id, req.day_of_week,
                                                    req.start_time, req.end_time, req.exclude_id)
    return envelope("Conflict check complete", **conflicts)


@router.get("/class/{class_id}")
async def get_class_timetable(class_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    SchoolClass(conn, admin_id).get_or_404(class_id)
    return _schedule(Timetable(conn, admin_id).for_class(class_id, year["id"]))


@router.get("/teacher/{teacher_id}")
async def get_teacher_timetable(teacher_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    Teacher(conn, admin_id).get_or_404(teacher_id)
    return _schedule(Timetable(conn, admin_id).for_teacher(teacher_id, year["id"]))


@router.get("/student/{student_id}")
async def get_student_timetable(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    return _schedule(Timetable(conn, admin_id).for_student(student_id, year["id"]))


@router.put("/{entry_id}")
async def update_timetable_entry(entry_id: int, req: TimetableEntryUpdateRequest,
                                 admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Timetable(conn, admin_id).update_entry(entry_id, req.model_dump(exclude_unset=True))
    conn.commit()
    return envelope("Timetable entry updated successfully")


@router.delete("/{entry_id}")
async def delete_timetable_entry(entry_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    entries = Timetable(conn, admin_id)
    entries.get_or_404(entry_id)
    entries.delete(entry_id)
    conn.commit()
    return envelope("Timetable entry deleted successfully")
