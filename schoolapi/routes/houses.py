from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import AcademicYear, House
from schoolapi.schemas import HouseCreateRequest, HouseMasterRequest, HouseRegistrationRequest, HouseUpdateRequest

router = APIRouter(prefix="/api/houses", tags=["houses"])


@router.post("", status_code=201)
async def create_house(req: HouseCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    house_id = House(conn, admin_id).create_house(req.model_dump())
    conn.commit()
    return envelope("House created successfully with blocks A-F", house_id=house_id)


@router.get("")
async def list_houses(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Houses retrieved", houses=House(conn, admin_id).list_with_counts())


@router.get("/eligible-students")
async def get_eligible_students(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    return envelope("Eligible students retrieved", students=House(conn, admin_id).eligible_students(year["id"]))


@router.post("/masters")
async def assign_house_master(req: HouseMasterRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    House(conn, admin_id).assign_master(req.house_id, req.teacher_id)
    conn.commit()
    return envelope("House master assigned successfully")


@router.post("/register")
async def register_student(req: HouseRegistrationRequest, admin_id: int = Depends(get_admin_id),
                           conn=Depends(get_db)):
    year = AcademicYear(conn, admin_id).require_current()
    House(conn, admin_id).register_student(req.student_id, req.house_id, req.house_block_id, year["id"])
    conn.commit()
    return envelope("Student registered to house successfully")


@router.get("/{house_id}")
async def get_house(house_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("House retrieved", house=House(conn, admin_id).details(house_id))


@router.put("/{house_id}")
async def update_house(house_id: int, req: HouseUpdateRequest, admin_id: int = Depends(get_admin_id),
                       conn=Depends(get_db)):
    houses = House(conn, admin_id)
    houses.get_or_404(house_id)
    data = req.model_dump(exclude_none=True)
    if not data:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    houses.update(house_id, data)
    conn.commit()
    return envelope("House updated successfully")


@router.delete("/{house_id}")
async def delete_house(house_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    houses = House(conn, admin_id)
    houses.get_or_404(house_id)
    conn.execute(
        "UPDATE students SET house_id = NULL, house_block_id = NULL, is_registered = 0 WHERE house_id = ?",
        (house_id,),
    )
    houses.delete(house_id)
    conn.commit()
    return envelope("House deleted successfully")


@router.get("/{house_id}/students")
async def get_house_students(house_id: int, block_id: Optional[int] = None, admin_id: int = Depends(get_admin_id),
                             conn=Depends(get_db)):
    return envelope("House students retrieved", students=House(conn, admin_id).students(house_id, block_id))
