from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, SchoolClass
from schoolapi.schemas import ClassCreateRequest, ClassUpdateRequest

router = APIRouter(prefix="/api/classes", tags=["classes"])


@router.post("", status_code=201)
async def create_class(req: ClassCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    class_id = SchoolClass(conn, admin_id).create_class(req.model_dump())
    conn.commit()
    return envelope("Class created successfully", class_id=class_id)


@router.get("")
async def list_classes(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).get_current()
    classes = SchoolClass(conn, admin_id).list_with_counts(year["id"] if year else None)
    return envelope("Classes retrieved", classes=classes)


@router.get("/{class_id}")
async def get_class(class_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Class retrieved", **{"class": SchoolClass(conn, admin_id).get_or_404(class_id)})


@router.put("/{class_id}")
async def update_class(class_id: int, req: ClassUpdateRequest, admin_id: int = Depends(get_admin_id),
                       conn=Depends(get_db)):
    classes = SchoolClass(conn, admin_id)
    classes.get_or_404(class_id)
    classes.update(class_id, req.model_dump(exclude_unset=True))
    conn.commit()
    return envelope("Class updated successfully")


@router.delete("/{class_id}")
async def delete_class(class_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    SchoolClass(conn, admin_id).delete_class(class_id)
    conn.commit()
    return envelope("Class deleted successfully")


@router.get("/{class_id}/subjects")
async def get_class_subjects(class_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    classes = SchoolClass(conn, admin_id)
    classes.get_or_404(class_id)
    return envelope("Subjects retrieved", subjects=classes.subjects(class_id))


@router.get("/{class_id}/students")
async def get_class_students(class_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    classes = SchoolClass(conn, admin_id)
    classes.get_or_404(class_id)
    year = AcademicYear(conn, admin_id).require_current()
    return envelope("Students retrieved", students=classes.students(class_id, year["id"]))
