from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import INTEGRITY_ERRORS, get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Enrollment, SchoolClass, Student
from schoolapi.schemas import EnrollRequest, StudentCreateRequest, StudentUpdateRequest

router = APIRouter(prefix="/api/students", tags=["students"])


@router.post("", status_code=201)
async def create_student(req: StudentCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = None
    if req.class_id:
        SchoolClass(conn, admin_id).get_or_404(req.class_id)
        year = AcademicYear(conn, admin_id).require_current()
    try:
        student_id = Student(conn, admin_id).create(req.model_dump(exclude={"class_id"}))
    except INTEGRITY_ERRORS:
        raise HTTPException(status_code=409, detail=f"Student ID number '{req.id_number}' already exists")
    if year:
        Enrollment(conn).enroll(student_id, req.class_id, year["id"])
    conn.commit()
    return envelope("Student created successfully", student_id=student_id)


@router.get("")
async def list_students(class_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                        conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_current()
    students = Student(conn, admin_id).list_students(year["id"] if year else None, class_id)
    return envelope("Students retrieved", students=students)


@router.get("/{student_id}")
async def get_student(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_current()
    student = Student(conn, admin_id).with_enrollment(student_id, year["id"] if year else None)
    return envelope("Student retrieved", student=student)


@router.put("/{student_id}")
async def update_student(student_id: int, req: StudentUpdateRequest, admin_id: int = Depends(get_admin_id),
                         conn=Depends(get_db)):
    students = Student(conn, admin_id)
    students.get_or_404(student_id)
    try:
        students.update(student_id, req.model_dump(exclude_unset=True))
    except INTEGRITY_ERRORS:
        raise HTTPException(status_code=409, detail=f"Student ID number '{req.id_number}' already exists")
    conn.commit()
    return envelope("Student updated successfully")


@router.delete("/{student_id}")
async def delete_student(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    students = Student(conn, admin_id)
    students.get_or_404(student_id)
    students.delete(student_id)
    conn.commit()
    return envelope("Student deleted successfully")


@router.post("/{student_id}/enroll", status_code=201)
async def enroll_student(student_id: int, req: EnrollRequest, admin_id: int = Depends(get_admin_id),
                         conn=Depends(get_db)):
    Student(conn, admin_id).get_or_404(student_id)
    SchoolClass(conn, admin_id).get_or_404(req.class_id)
    year = AcademicYear(conn, admin_id).resolve(req.academic_year_id)
    enrollment_id = Enrollment(conn).enroll(student_id, req.class_id, year["id"])
    conn.commit()
    return envelope("Student enrolled successfully", enrollment_id=enrollment_id)


@router.get("/{student_id}/enrollments")
async def get_student_enrollments(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Student(conn, admin_id).get_or_404(student_id)
    return envelope("Enrollments retrieved", enrollments=Enrollment(conn).history(student_id))
