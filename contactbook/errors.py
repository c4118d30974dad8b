"""Error taxonomy shared by services and routers."""

from __future__ import annotations

import uuid

GENERIC_FAILURE = "Could not complete the action, please try again."


class ContactBookError(Exception):
    """Base class for contact book errors."""


class NotAuthenticated(ContactBookError):
    """Raised when an operation needs a signed-in principal and has none."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ContactNotFound(ContactBookError):
    """Raised when no contact with the id is owned by the principal."""

    def __init__(self, contact_id: uuid.UUID):
        super().__init__(f"Contact {contact_id} not found")
        self.contact_id = contact_id


class FormValidationError(ContactBookError):
    """Raised by the contact form when field checks fail before submission."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = dict(errors)


class BackendFailure(ContactBookError):
    """Raised when the database rejects or fails a read or write."""

    def __init__(self, message: str = GENERIC_FAILURE):
        super().__init__(message)


class SignUpRejected(ContactBookError):
    """Raised when a sign-up request cannot create an account."""
