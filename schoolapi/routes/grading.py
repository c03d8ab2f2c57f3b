from typing import Optional

from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Grade, GradingSystem, Student, Subject
from schoolapi.schemas import (
    GradeCalculateRequest,
    GradePresetRequest,
    GradeRangeCreateRequest,
    GradeRangeUpdateRequest,
    GradeUpsertRequest,
)

router = APIRouter(prefix="/api", tags=["grading"])


# --- GRADING SYSTEM ---

@router.get("/grading-system")
async def get_grading_scheme(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                             conn=Depends(get_db)):
    scheme = GradingSystem(conn, admin_id).get_scheme(academic_year_id)
    return envelope("Grading scheme retrieved", grading_scheme=scheme)


@router.post("/grading-system", status_code=201)
async def create_grade_range(req: GradeRangeCreateRequest, admin_id: int = Depends(get_admin_id),
                             conn=Depends(get_db)):
    if req.academic_year_id:
        AcademicYear(conn, admin_id).get_or_404(req.academic_year_id)
    range_id = GradingSystem(conn, admin_id).create_range(req.model_dump())
    conn.commit()
    return envelope("Grade range created successfully", grade_range_id=range_id)


@router.put("/grading-system/{range_id}")
async def update_grade_range(range_id: int, req: GradeRangeUpdateRequest, admin_id: int = Depends(get_admin_id),
                             conn=Depends(get_db)):
    GradingSystem(conn, admin_id).update_range(range_id, req.model_dump(exclude_none=True))
    conn.commit()
    return envelope("Grade range updated successfully")


@router.delete("/grading-system/{range_id}")
async def delete_grade_range(range_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    GradingSystem(conn, admin_id).deactivate(range_id)
    conn.commit()
    return envelope("Grade range deleted successfully")


@router.post("/grading-system/calculate")
async def calculate_grade(req: GradeCalculateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    grade = GradingSystem(conn, admin_id).calculate(req.score, req.academic_year_id)
    return envelope("Grade calculated", score=req.score, grade=grade)


@router.post("/grading-system/presets", status_code=201)
async def create_grading_preset(req: GradePresetRequest, admin_id: int = Depends(get_admin_id),
                                conn=Depends(get_db)):
    created = GradingSystem(conn, admin_id).create_preset(req.preset_type, req.academic_year_id)
    conn.commit()
    return envelope(f"Created {created} grade ranges from preset", created_count=created)


@router.get("/grading-system/statistics")
async def get_grade_statistics(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                               conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    stats = GradingSystem(conn, admin_id).statistics(year["id"])
    return envelope("Grade statistics retrieved", statistics=stats)


# --- STUDENT GRADES ---

@router.post("/grades")
async def save_grade(req: GradeUpsertRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Student(conn, admin_id).get_or_404(req.student_id)
    Subject(conn, admin_id).get_or_404(req.subject_id)
    year = AcademicYear(conn, admin_id).resolve(req.academic_year_id)
    percentage = req.percentage if req.percentage is not None else req.score
    grade = GradingSystem(conn, admin_id).calculate(percentage, year["id"])["grade_label"]
    grade_id = Grade(conn).update_or_create(
        req.student_id, req.subject_id, year["id"], req.score, percentage, grade, req.remarks
    )
    conn.commit()
    return envelope("Grade saved successfully", grade_id=grade_id, grade=grade)


@router.get("/grades/student/{student_id}")
async def get_student_grades(student_id: int, academic_year_id: Optional[int] = None,
                             admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Student(conn, admin_id).get_or_404(student_id)
    return envelope("Grades retrieved", grades=Grade(conn).for_student(student_id, academic_year_id))
