from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, PrincipalRemark, SchoolClass
from schoolapi.schemas import PrincipalRemarkRequest

router = APIRouter(prefix="/api/principal-remarks", tags=["principal-remarks"])


@router.post("", status_code=201)
async def save_principal_remarks(req: PrincipalRemarkRequest, admin_id: int = Depends(get_admin_id),
                                 conn=Depends(get_db)):
    AcademicYear(conn, admin_id).get_or_404(req.academic_year_id)
    SchoolClass(conn, admin_id).get_or_404(req.class_id)
    remark_id, created = PrincipalRemark(conn, admin_id).save(req.model_dump())
    conn.commit()
    return envelope(f"Remarks {'created' if created else 'updated'} successfully", remark_id=remark_id)


@router.get("/{year_id}")
async def list_principal_remarks(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    AcademicYear(conn, admin_id).get_or_404(year_id)
    return envelope("Remarks retrieved", remarks=PrincipalRemark(conn, admin_id).for_year(year_id))


@router.get("/{year_id}/{class_id}/{term}")
async def get_principal_remarks(year_id: int, class_id: int, term: int, admin_id: int = Depends(get_admin_id),
                                conn=Depends(get_db)):
    remark = PrincipalRemark(conn, admin_id).find_one(academic_year_id=year_id, class_id=class_id, term=term)
    return envelope("Remarks retrieved", remark=remark)
