"""JSON API for contacts - list, search, detail, create, update, favorite, delete."""

from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Principal
from ..cache import ContactCache
from ..config import settings
from ..database import get_db
from ..deps import get_cache, require_principal
from ..errors import BackendFailure, ContactNotFound, FormValidationError
from ..forms import ContactForm
from ..schemas.contact import ContactPatch, ContactResponse
from ..search import filter_contacts
from ..services import contact_svc

router = APIRouter(prefix="/api", tags=["contacts"])


def _not_found(exc: ContactNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail="Contact not found")


def _unavailable(exc: BackendFailure) -> HTTPException:
    return HTTPException(status_code=503, detail=str(exc))


def _invalid(exc: FormValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": "Please fix the highlighted fields", "errors": exc.errors},
    )


def _form_values(payload: ContactPatch) -> dict:
    # An explicit null for a flag or the tag list means "leave as is".
    values = payload.model_dump(exclude_unset=True)
    return {k: v for k, v in values.items() if v is not None or k not in ("favorite", "tags")}


async def _owner_list(
    db: AsyncSession, principal: Principal, cache: ContactCache
) -> list[ContactResponse]:
    cached = cache.get_list(principal.id)
    if cached is not None:
        return cached
    try:
        contacts = await contact_svc.list_contacts(db, principal)
    except BackendFailure as exc:
        raise _unavailable(exc) from exc
    items = [ContactResponse.model_validate(c) for c in contacts]
    cache.set_list(principal.id, items)
    return items


@router.get("/contacts")
async def contact_list(
    favorite: bool | None = None,
    tag: str | None = None,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
) -> list[ContactResponse]:
    if favorite is None and not tag:
        return await _owner_list(db, principal, cache)
    try:
        contacts = await contact_svc.list_contacts(db, principal, favorite=favorite, tag_name=tag)
    except BackendFailure as exc:
        raise _unavailable(exc) from exc
    return [ContactResponse.model_validate(c) for c in contacts]


@router.get("/contacts/search")
async def contact_search(
    q: str = "",
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
) -> list[ContactResponse]:
    if settings.local_search:
        return filter_contacts(await _owner_list(db, principal, cache), q)
    try:
        contacts = await contact_svc.search_contacts(db, principal, q, local=False)
    except BackendFailure as exc:
        raise _unavailable(exc) from exc
    return [ContactResponse.model_validate(c) for c in contacts]


@router.get("/contacts/{contact_id}")
async def contact_detail(
    contact_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
) -> ContactResponse:
    cached = cache.get(principal.id, contact_id)
    if cached is not None:
        return cached
    try:
        contact = await contact_svc.get_contact(db, principal, contact_id)
    except ContactNotFound as exc:
        raise _not_found(exc) from exc
    except BackendFailure as exc:
        raise _unavailable(exc) from exc
    item = ContactResponse.model_validate(contact)
    cache.set(principal.id, item)
    return item


@router.post("/contacts", status_code=201)
async def contact_create(
    payload: ContactPatch,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
) -> ContactResponse:
    form = ContactForm()
    form.update(_form_values(payload))

    async def _save(data):
        return await contact_svc.create_contact(db, principal, data)

    try:
        contact = await form.submit(_save)
    except FormValidationError as exc:
        raise _invalid(exc) from exc
    except BackendFailure as exc:
        raise _unavailable(exc) from exc

    cache.invalidate(principal.id, contact.id)
    return ContactResponse.model_validate(contact)


@router.put("/contacts/{contact_id}")
async def contact_update(
    contact_id: uuid.UUID,
    payload: ContactPatch,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
) -> ContactResponse:
    try:
        existing = await contact_svc.get_contact(db, principal, contact_id)
    except ContactNotFound as exc:
        raise _not_found(exc) from exc
    except BackendFailure as exc:
        raise _unavailable(exc) from exc

    form = ContactForm(ContactResponse.model_validate(existing).model_dump())
    form.update(_form_values(payload))

    async def _save(data):
        return await contact_svc.update_contact(db, principal, contact_id, data)

    try:
        contact = await form.submit(_save)
    except FormValidationError as exc:
        raise _invalid(exc) from exc
    except ContactNotFound as exc:
        raise _not_found(exc) from exc
    except BackendFailure as exc:
        raise _unavailable(exc) from exc

    cache.invalidate(principal.id, contact_id)
    return ContactResponse.model_validate(contact)


@router.post("/contacts/{contact_id}/favorite")
async def contact_toggle_favorite(
    contact_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
) -> ContactResponse:
    try:
        contact = await contact_svc.toggle_favorite(db, principal, contact_id)
    except ContactNotFound as exc:
        raise _not_found(exc) from exc
    except BackendFailure as exc:
        raise _unavailable(exc) from exc
    cache.invalidate(principal.id, contact_id)
    return ContactResponse.model_validate(contact)


@router.delete("/contacts/{contact_id}")
async def contact_delete(
    contact_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    cache: ContactCache = Depends(get_cache),
):
    try:
        await contact_svc.delete_contact(db, principal, contact_id)
    except ContactNotFound as exc:
        raise _not_found(exc) from exc
    except BackendFailure as exc:
        raise _unavailable(exc) from exc
    cache.invalidate(principal.id, contact_id)
    return {"deleted": True}
