"""Tag routes - list, create, delete, prune."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Principal
from ..cache import ContactCache
from ..database import get_db
from ..deps import get_cache, require_principal
from ..errors import BackendFailure
from ..schemas.contact import TagResponse
from ..services import tag_svc

router = APIRouter(prefix="/api", tags=["tags"])


@router.get("/tags")
async def tag_list(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
) -> list[TagResponse]:
    tags = await tag_svc.list_tags(db, principal)
    return [TagResponse.model_validate(t) for t in tags]


@router.post("/tags", status_code=201)
async def tag_create(
    name: str = Body(..., embed=True),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
) -> TagResponse:
    try:
        tag = await tag_svc.create_tag(db, principal, name)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except BackendFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return TagResponse.model_validate(tag)


@router.delete("/tags/{tag_id}")
async def tag_delete(
    tag_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
):
    try:
        deleted = await tag_svc.delete_tag(db, principal, tag_id)
    except BackendFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="Tag not found")
    # Any of the owner's contacts may have carried the tag.
    cache.invalidate_owner(principal.id)
    return {"deleted": True}


@router.post("/tags/prune")
async def tag_prune(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    try:
        removed = await tag_svc.prune_unused_tags(db, principal)
    except BackendFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"removed": removed}
