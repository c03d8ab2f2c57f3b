from fastapi import APIRouter, Depends, HTTPException

from schoolapi.database import get_db
from schoolapi.dependencies import envelope, get_admin_id
from schoolapi.models import Notice
from schoolapi.models.notice import AUDIENCES
from schoolapi.schemas import NoticeCreateRequest, NoticeUpdateRequest

router = APIRouter(prefix="/api/notices", tags=["notices"])


@router.post("", status_code=201)
async def create_notice(req: NoticeCreateRequest, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    notice_id = Notice(conn, admin_id).create(req.model_dump())
    conn.commit()
    return envelope("Notice created successfully", notice_id=notice_id)


@router.get("")
async def list_notices(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Notices retrieved", notices=Notice(conn, admin_id).find_all())


@router.get("/stats")
async def get_notice_stats(admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Notice stats retrieved", stats=Notice(conn, admin_id).stats())


@router.get("/audience/{audience}")
async def get_notices_by_audience(audience: str, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    if audience not in AUDIENCES:
        raise HTTPException(status_code=400, detail=f"Invalid audience. Available: {', '.join(AUDIENCES)}")
    return envelope("Notices retrieved", notices=Notice(conn, admin_id).for_audience(audience))


@router.get("/{notice_id}")
async def get_notice(notice_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    return envelope("Notice retrieved", notice=Notice(conn, admin_id).get_or_404(notice_id))


@router.put("/{notice_id}")
async def update_notice(notice_id: int, req: NoticeUpdateRequest, admin_id: int = Depends(get_admin_id),
                        conn=Depends(get_db)):
    notices = Notice(conn, admin_id)
    notices.get_or_404(notice_id)
    notices.update(notice_id, req.model_dump(exclude_unset=True))
    conn.commit()
    return envelope("Notice updated successfully")


@router.delete("/{notice_id}")
async def delete_notice(notice_id: int, admin_id: int = Depends(get_admin_id), conn=Depends(get_db)):
    notices = Notice(conn, admin_id)
    notices.get_or_404(notice_id)
    notices.delete(notice_id)
    conn.commit()
    return envelope("Notice deleted successfully")
