from typing import Optional

from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.schemas import ClassRankingRequest, SubjectRankingRequest
from schoolapi.services import RankingService

router = APIRouter(prefix="/api/rankings", tags=["rankings"])


@router.post("/subject/calculate")
async def calculate_subject_rankings(req: SubjectRankingRequest, admin_id: int = Depends(get_admin_id),
                                     conn=Depends(get_db)):
    total = RankingService(conn, admin_id).calculate_subject(req.exam_id, req.subject_id, req.class_id)
    conn.commit()
    return envelope("Subject rankings calculated successfully", total_students=total)


@router.post("/class/calculate")
async def calculate_class_rankings(req: ClassRankingRequest, admin_id: int = Depends(get_admin_id),
                                   conn=Depends(get_db)):
    total = RankingService(conn, admin_id).calculate_class(req.exam_id, req.class_id)
    conn.commit()
    return envelope("Class rankings calculated successfully", total_students=total)


@router.post("/exams/{exam_id}/calculate-all")
async def calculate_all_rankings(exam_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    summary = RankingService(conn, admin_id).calculate_all(exam_id)
    conn.commit()
    return envelope(f"Rankings calculated for {len(summary)} classes", classes=summary)


@router.get("/subject")
async def get_subject_rankings(exam_id: int, subject_id: int, class_id: Optional[int] = None,
                               admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    rankings = RankingService(conn, admin_id).subject_rankings(exam_id, subject_id, class_id)
    return envelope("Subject rankings retrieved", rankings=rankings)


@router.get("/class")
async def get_class_rankings(exam_id: int, class_id: int, admin_id: int = Depends(get_admin_id),
                             conn=Depends(get_db)):
    rankings = RankingService(conn, admin_id).class_rankings(exam_id, class_id)
    return envelope("Class rankings retrieved", rankings=rankings)


@router.post("/exams/{exam_id}/publish")
async def publish_rankings(exam_id: int, subject_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                           conn=Depends(get_db)):
    published = RankingService(conn, admin_id).publish(exam_id, subject_id)
    conn.commit()
    return envelope("Rankings published successfully", published=published)
