import logging

from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Term
from schoolapi.schemas import AcademicYearCreateRequest, AcademicYearUpdateRequest
from schoolapi.services import PromotionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/academic-years", tags=["academic-years"])


@router.post("", status_code=201)
async def create_academic_year(req: AcademicYearCreateRequest, admin_id: int = Depends(get_admin_id),
                               conn=Depends(get_db)):
    year_id = AcademicYear(conn, admin_id).create_year(req.model_dump(exclude_none=True))
    conn.commit()
    return envelope("Academic year created successfully", academic_year_id=year_id)


@router.get("")
async def list_academic_years(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Academic years retrieved", academic_years=AcademicYear(conn, admin_id).find_all())


@router.get("/current")
async def get_current_academic_year(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current(status_code=404)
    return envelope("Current academic year retrieved", academic_year=year)


@router.get("/{year_id}")
async def get_academic_year(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Academic year retrieved", academic_year=AcademicYear(conn, admin_id).get_or_404(year_id))


@router.get("/{year_id}/terms")
async def get_academic_year_terms(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    AcademicYear(conn, admin_id).get_or_404(year_id)
    return envelope("Terms retrieved", terms=Term(conn).for_year(year_id))


@router.put("/{year_id}")
async def update_academic_year(year_id: int, req: AcademicYearUpdateRequest,
                               admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    AcademicYear(conn, admin_id).update_year(year_id, req.model_dump(exclude_unset=True))
    conn.commit()
    return envelope("Academic year updated successfully")


@router.put("/{year_id}/set-current")
async def set_current_academic_year(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    AcademicYear(conn, admin_id).set_current(year_id)
    conn.commit()
    return envelope("Current academic year updated")


@router.post("/{year_id}/complete")
async def complete_academic_year(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    results = PromotionService(conn, admin_id).process(year_id)
    AcademicYear(conn, admin_id).mark_completed(year_id)
    conn.commit()
    logger.info(f"Academic year {year_id} completed for admin {admin_id}")
    return envelope("Academic year completed and promotions processed", results=results)


@router.post("/{year_id}/promote")
async def promote_students(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    summary = PromotionService(conn, admin_id).legacy_promote(year_id)
    conn.commit()
    return envelope("Students promoted", summary=summary)


@router.delete("/{year_id}")
async def delete_academic_year(year_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    years = AcademicYear(conn, admin_id)
    years.get_or_404(year_id)
    years.delete(year_id)
    conn.commit()
    return envelope("Academic year deleted successfully")
