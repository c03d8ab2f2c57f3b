from typing import Optional

from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, Term
from schoolapi.schemas import TermRecreateRequest, TermToggleRequest

router = APIRouter(prefix="/api/terms", tags=["terms"])


@router.get("/current")
async def get_current_term(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Current term retrieved", term=Term(conn).current_for_admin(admin_id))


@router.post("/recreate")
async def recreate_terms(req: TermRecreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_or_404(req.academic_year_id)
    terms = Term(conn).recreate_for_year(year, req.exams_per_term, req.total_terms)
    conn.commit()
    return envelope("Terms created successfully", terms=terms)


@router.post("/check-toggle")
async def check_term_toggle(academic_year_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                            conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(academic_year_id)
    toggled = Term(conn).check_and_toggle(year)
    conn.commit()
    message = "Term advanced" if toggled else "Current term unchanged"
    return envelope(message, toggled=toggled)


@router.post("/toggle")
async def manual_toggle_term(req: TermToggleRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).resolve(req.academic_year_id)
    Term(conn).manual_toggle(year, req.term_number)
    conn.commit()
    return envelope(f"Current term set to Term {req.term_number}", current_term=req.term_number)
