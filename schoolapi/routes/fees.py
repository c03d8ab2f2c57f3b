from typing import Optional

from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, FeesPayment, Student
from schoolapi.schemas import FeePaymentCreateRequest, FeePaymentUpdateRequest

router = APIRouter(prefix="/api/fees", tags=["fees"])


@router.post("", status_code=201)
async def create_payment(req: FeePaymentCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    Student(conn, admin_id).get_or_404(req.student_id)
    data = req.model_dump()
    data["academic_year_id"] = year["id"]
    payment_id = FeesPayment(conn, admin_id).record_payment(data)
    conn.commit()
    return envelope("Payment recorded successfully", payment_id=payment_id)


@router.get("")
async def list_payments(term: Optional[str] = None, status: Optional[str] = None,
                        academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                        conn=Depends(get_db)):
    payments = FeesPayment(conn, admin_id).list_payments(academic_year_id, term, status)
    return envelope("Payments retrieved", payments=payments)


@router.get("/stats")
async def get_payment_stats(term: Optional[str] = None, admin_id: int = Depends(get_admin_id),
                            conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    return envelope("Payment stats retrieved", stats=FeesPayment(conn, admin_id).stats(year["id"], term))


@router.get("/student/{student_id}")
async def get_student_payments(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Student(conn, admin_id).get_or_404(student_id)
    payments = FeesPayment(conn, admin_id).list_payments(student_id=student_id)
    return envelope("Payments retrieved", payments=payments)


@router.get("/term/{term}")
async def get_payments_by_term(term: str, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    payments = FeesPayment(conn, admin_id).list_payments(year["id"], term=term)
    return envelope("Payments retrieved", payments=payments)


@router.put("/{payment_id}")
async def update_payment(payment_id: int, req: FeePaymentUpdateRequest, admin_id: int = Depends(get_admin_id),
                         conn=Depends(get_db)):
    FeesPayment(conn, admin_id).update_payment(payment_id, req.model_dump(exclude_unset=True))
    conn.commit()
    return envelope("Payment updated successfully")


@router.delete("/{payment_id}")
async def delete_payment(payment_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    payments = FeesPayment(conn, admin_id)
    payments.get_or_404(payment_id)
    payments.delete(payment_id)
    conn.commit()
    return envelope("Payment deleted successfully")
