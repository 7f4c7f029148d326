"""Exceptions raised by the service layer and mapped to HTTP errors by routes."""
from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced record (agent, hostel, user) does not exist."""


class InvalidAmountError(ValueError):
    """A money amount failed validation before any write was attempted."""
