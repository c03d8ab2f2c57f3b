from typing import Optional

from fastapi import Header, HTTPException


def get_admin_id(x_admin_id: Optional[str] = Header(None, alias="X-Admin-Id")) -> int:
    """Tenant of the request; every school's rows carry this admin id."""
    if not x_admin_id:
        raise HTTPException(status_code=400, detail="X-Admin-Id header is required")
    try:
        return int(x_admin_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-Admin-Id header must be an integer")


def envelope(message: str, status: bool = True, **data):
    return {"success": status, "message": message, **data}
