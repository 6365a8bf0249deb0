"""
Typed failures raised by the write pipeline.

Every service operation either returns its result or raises one of these.
Route handlers map them onto HTTP responses via ``status_code``; the services
themselves never catch and swallow them.
"""

from __future__ import annotations


class FarmOpsError(Exception):
    """Base class. Carries a human-readable message and structured details."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(FarmOpsError):
    """400-level input problem. Never mutates state."""

    status_code = 400


class NotFoundError(FarmOpsError):
    """A referenced product, flock, customer or user does not exist."""

    status_code = 404


class ForbiddenError(FarmOpsError):
    """Tenant isolation violation."""

    status_code = 403


class ConflictError(FarmOpsError):
    """409-level concurrency or uniqueness violation (stock, duplicate record)."""

    status_code = 409
