"""Dashboard summary - totals, recent and favorite contacts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Principal
from ..database import get_db
from ..deps import require_principal
from ..errors import BackendFailure
from ..schemas.contact import ContactSummary
from ..services import contact_svc

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/dashboard")
async def dashboard(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
) -> ContactSummary:
    try:
        summary = await contact_svc.contact_summary(db, principal)
    except BackendFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ContactSummary.model_validate(summary, from_attributes=True)
