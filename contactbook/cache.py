"""In-memory cache of serialized contacts, scoped per owner.

Entries are dropped explicitly after a successful write; nothing expires on
its own. One instance lives on ``app.state``.
"""

from __future__ import annotations

import logging
import uuid

from .schemas.contact import ContactResponse

log = logging.getLogger(__name__)


class ContactCache:
    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._lists: dict[uuid.UUID, list[ContactResponse]] = {}
        self._items: dict[tuple[uuid.UUID, uuid.UUID], ContactResponse] = {}

    def get_list(self, owner_id: uuid.UUID) -> list[ContactResponse] | None:
        if not self.enabled:
            return None
        cached = self._lists.get(owner_id)
        return list(cached) if cached is not None else None

    def set_list(self, owner_id: uuid.UUID, contacts: list[ContactResponse]) -> None:
        if self.enabled:
            self._lists[owner_id] = list(contacts)

    def get(self, owner_id: uuid.UUID, contact_id: uuid.UUID) -> ContactResponse | None:
        if not self.enabled:
            return None
        return self._items.get((owner_id, contact_id))

    def set(self, owner_id: uuid.UUID, contact: ContactResponse) -> None:
        if self.enabled:
            self._items[(owner_id, contact.id)] = contact

    def invalidate(self, owner_id: uuid.UUID, contact_id: uuid.UUID | None = None) -> None:
        """Drop the owner's list and, when given, the contact's own entry."""
        self._lists.pop(owner_id, None)
        if contact_id is not None:
            self._items.pop((owner_id, contact_id), None)
        log.debug("cache invalidated owner=%s contact=%s", owner_id, contact_id)

    def invalidate_owner(self, owner_id: uuid.UUID) -> None:
        self._lists.pop(owner_id, None)
        for key in [k for k in self._items if k[0] == owner_id]:
            del self._items[key]

    def clear(self) -> None:
        self._lists.clear()
        self._items.clear()

    def __len__(self) -> int:
        return len(self._lists) + len(self._items)
