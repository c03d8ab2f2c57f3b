from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Exam, ExamResult
from schoolapi.schemas import ExamCreateRequest, ExamResultRequest, ResultApprovalRequest

router = APIRouter(prefix="/api/exams", tags=["exams"])


@router.post("", status_code=201)
async def create_exam(req: ExamCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    data = req.model_dump()
    if req.term_id:
        term = conn.execute(
            "SELECT id FROM terms WHERE id = ? AND academic_year_id = ?", (req.term_id, year["id"])
        ).fetchone()
        if term is None:
            raise HTTPException(status_code=400, detail="Term does not belong to the current academic year")
    data["academic_year_id"] = year["id"]
    exam_id = Exam(conn, admin_id).create(data)
    conn.commit()
    return envelope("Exam created successfully", exam_id=exam_id)


@router.get("")
async def list_exams(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                     admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    return envelope("Exams retrieved", exams=Exam(conn, admin_id).list_for_year(year["id"], class_id))


@router.post("/results", status_code=201)
async def record_exam_result(req: ExamResultRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    exam = Exam(conn, admin_id).get_or_404(req.exam_id)
    result_id, grade, total = ExamResult(conn).record(exam, req.model_dump(), admin_id)
    conn.commit()
    return envelope("Exam result recorded successfully", result_id=result_id, grade=grade, total_score=total)


@router.get("/results/student/{student_id}")
async def get_student_results(student_id: int, academic_year_id: Optional[int] = None,
                              admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    results = ExamResult(conn).for_student(student_id, admin_id, academic_year_id)
    return envelope("Results retrieved", results=results)


@router.put("/results/{result_id}/approval")
async def update_result_approval(result_id: int, req: ResultApprovalRequest,
                                 admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    ExamResult(conn).set_approval(result_id, req.approval_status, admin_id)
    conn.commit()
    return envelope(f"Result marked {req.approval_status}")


@router.get("/{exam_id}")
async def get_exam(exam_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Exam retrieved", exam=Exam(conn, admin_id).get_or_404(exam_id))


@router.get("/{exam_id}/results")
async def get_exam_results(exam_id: int, subject_id: Optional[int] = None,
                           admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Exam(conn, admin_id).get_or_404(exam_id)
    return envelope("Results retrieved", results=ExamResult(conn).for_exam(exam_id, subject_id))


@router.post("/{exam_id}/publish")
async def publish_exam(exam_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    toggled = Exam(conn, admin_id).publish(exam_id)
    conn.commit()
    return envelope("Exam published successfully", term_toggled=toggled)


@router.delete("/{exam_id}")
async def delete_exam(exam_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Exam(conn, admin_id).delete_exam(exam_id)
    conn.commit()
    return envelope("Exam deleted successfully")
