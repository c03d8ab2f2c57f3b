from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import INTEGRITY_ERRORS, get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import SchoolClass, Subject
from schoolapi.schemas import SubjectCreateRequest, SubjectUpdateRequest

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


@router.post("", status_code=201)
async def create_subject(req: SubjectCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    SchoolClass(conn, admin_id).get_or_404(req.class_id)
    try:
        subject_id = Subject(conn, admin_id).create(req.model_dump())
    except INTEGRITY_ERRORS:
        raise HTTPException(status_code=409, detail="Subject code already exists for this class")
    conn.commit()
    return envelope("Subject created successfully", subject_id=subject_id)


@router.get("")
async def list_subjects(class_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                        conn=Depends(get_db)):
    return envelope("Subjects retrieved", subjects=Subject(conn, admin_id).list_with_class(class_id))


@router.get("/{subject_id}")
async def get_subject(subject_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Subject retrieved", subject=Subject(conn, admin_id).get_or_404(subject_id))


@router.put("/{subject_id}")
async def update_subject(subject_id: int, req: SubjectUpdateRequest, admin_id: int = Depends(get_admin_id),
                         conn=Depends(get_db)):
    subjects = Subject(conn, admin_id)
    subjects.get_or_404(subject_id)
    try:
        subjects.update(subject_id, req.model_dump(exclude_unset=True))
    except INTEGRITY_ERRORS:
        raise HTTPException(status_code=409, detail="Subject code already exists for this class")
    conn.commit()
    return envelope("Subject updated successfully")


@router.delete("/{subject_id}")
async def delete_subject(subject_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    Subject(conn, admin_id).delete_subject(subject_id)
    conn.commit()
    return envelope("Subject deleted successfully")
