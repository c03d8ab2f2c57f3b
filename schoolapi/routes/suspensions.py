from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import Student, Suspension
from schoolapi.schemas import SuspensionRequest

router = APIRouter(prefix="/api/suspensions", tags=["suspensions"])


@router.post("", status_code=201)
async def suspend_student(req: SuspensionRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    suspension_id = Suspension(conn, admin_id).suspend(req.model_dump())
    conn.commit()
    return envelope("Student suspended successfully", suspension_id=suspension_id)


@router.post("/{student_id}/lift")
async def lift_suspension(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Suspension(conn, admin_id).lift(student_id)
    conn.commit()
    return envelope("Suspension lifted successfully")


@router.get("/active")
async def get_active_suspensions(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Active suspensions retrieved", suspensions=Suspension(conn, admin_id).active())


@router.get("/student/{student_id}")
async def get_suspension_history(student_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Student(conn, admin_id).get_or_404(student_id)
    return envelope("Suspension history retrieved", suspensions=Suspension(conn, admin_id).history(student_id))
