from typing import Optional

from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import Complaint
from schoolapi.schemas import ComplaintCreateRequest, ComplaintStatusRequest

router = APIRouter(prefix="/api/complaints", tags=["complaints"])


@router.post("", status_code=201)
async def create_complaint(req: ComplaintCreateRequest, admin_id: int = Depends(get_admin_id),
                           conn=Depends(get_db)):
    complaint_id = Complaint(conn, admin_id).create(dict(req.model_dump(), status="pending"))
    conn.commit()
    return envelope("Complaint submitted successfully", complaint_id=complaint_id)


@router.get("")
async def list_complaints(status: Optional[str] = None, admin_id: int = Depends(get_admin_id),
                          conn=Depends(get_db)):
    return envelope("Complaints retrieved", complaints=Complaint(conn, admin_id).list_complaints(status))


@router.get("/stats")
async def get_complaint_stats(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Complaint stats retrieved", stats=Complaint(conn, admin_id).stats())


@router.get("/mine")
async def get_my_complaints(user_type: str, user_id: int, admin_id: int = Depends(get_admin_id),
                            conn=Depends(get_db)):
    return envelope("Complaints retrieved", complaints=Complaint(conn, admin_id).for_user(user_type, user_id))


@router.get("/{complaint_id}")
async def get_complaint(complaint_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Complaint retrieved", complaint=Complaint(conn, admin_id).get_or_404(complaint_id))


@router.put("/{complaint_id}/status")
async def update_complaint_status(complaint_id: int, req: ComplaintStatusRequest,
                                  admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Complaint(conn, admin_id).set_status(complaint_id, req.status, req.response)
    conn.commit()
    return envelope("Complaint status updated successfully")


@router.delete("/{complaint_id}")
async def delete_complaint(complaint_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    complaints = Complaint(conn, admin_id)
    complaints.get_or_404(complaint_id)
    complaints.delete(complaint_id)
    conn.commit()
    return envelope("Complaint deleted successfully")
