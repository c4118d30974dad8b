"""Contact book models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin
from .account import Account
from .contact import Contact
from .tag import Tag, ContactTag

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "OwnerMixin",
    "Account",
    "Contact",
    "ContactTag",
    "Tag",
]
