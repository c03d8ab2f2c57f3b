from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Enrollment
from schoolapi.schemas import ManualAssignRequest, RolloverRequest
from schoolapi.services import PromotionService

router = APIRouter(prefix="/api/promotions", tags=["promotions"])


def _require_year_id(academic_year_id):
    if not academic_year_id:
        raise HTTPException(status_code=400, detail="academic_year_id is required")
    return academic_year_id


@router.post("/process/{year_id}")
async def process_promotions(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    results = PromotionService(conn, admin_id).process(year_id)
    conn.commit()
    return envelope("Promotions processed successfully", results=results)


@router.get("/preview/{year_id}")
async def preview_promotions(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Promotion preview generated", preview=PromotionService(conn, admin_id).preview(year_id))


@router.get("/waitlist")
async def get_waitlist(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                       conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_or_404(_require_year_id(academic_year_id))
    return envelope("Waitlist retrieved", students=Enrollment(conn).by_promotion_status(year["id"], "waitlist"))


@router.get("/repeats")
async def get_repeats(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                      conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_or_404(_require_year_id(academic_year_id))
    return envelope("Repeating students retrieved",
                    students=Enrollment(conn).by_promotion_status(year["id"], "repeat"))


@router.post("/manual-assign", status_code=201)
async def manual_assign(req: ManualAssignRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    enrollment_id = PromotionService(conn, admin_id).manual_assign(
        req.student_id, req.target_academic_year_id, req.class_id, req.override_capacity
    )
    conn.commit()
    return envelope("Student assigned successfully", enrollment_id=enrollment_id)


@router.get("/stats")
async def get_promotion_stats(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                              conn=Depends(get_db)):
    stats = PromotionService(conn, admin_id).stats(_require_year_id(academic_year_id))
    return envelope("Promotion stats retrieved", stats=stats)


@router.post("/rollover")
async def rollover(req: RolloverRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    if req.source_academic_year_id == req.target_academic_year_id:
        raise HTTPException(status_code=400, detail="Source and target academic years must differ")
    result = PromotionService(conn, admin_id).rollover(
        req.source_academic_year_id, req.target_academic_year_id, req.include_waitlist
    )
    conn.commit()
    return envelope("Rollover completed", **result)
