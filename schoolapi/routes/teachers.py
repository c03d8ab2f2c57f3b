from fastapi import APIRouter, Depends

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import Teacher
from schoolapi.schemas import TeacherRequest, TeacherUpdateRequest

router = APIRouter(prefix="/api/teachers", tags=["teachers"])


@router.post("", status_code=201)
async def create_teacher(req: TeacherRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    teacher_id = Teacher(conn, admin_id).create(req.model_dump())
    conn.commit()
    return envelope("Teacher added successfully", teacher_id=teacher_id)


@router.get("")
async def list_teachers(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Teachers retrieved", teachers=Teacher(conn, admin_id).find_all())


@router.get("/{teacher_id}")
async def get_teacher(teacher_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Teacher retrieved", teacher=Teacher(conn, admin_id).get_or_404(teacher_id))


@router.put("/{teacher_id}")
async def update_teacher(teacher_id: int, req: TeacherUpdateRequest, admin_id: int = Depends(get_admin_id),
                         conn=Depends(get_db)):
    teachers = Teacher(conn, admin_id)
    teachers.get_or_404(teacher_id)
    teachers.update(teacher_id, req.model_dump(exclude_unset=True))
    conn.commit()
    return envelope("Teacher updated successfully")


@router.delete("/{teacher_id}")
async def delete_teacher(teacher_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    teachers = Teacher(conn, admin_id)
    teachers.get_or_404(teacher_id)
    teachers.delete(teacher_id)
    conn.commit()
    return envelope("Teacher deleted successfully")
