from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import verify_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/verify", dependencies=[Depends(verify_admin)])
async def verify_admin_password() -> dict:
    """Confirm the X-Admin-Password header is accepted.

    Lets a dashboard check the password before showing review controls.
    """

    return {"status": "ok"}
