"""
Error taxonomy for approval lifecycle operations.

Every error is raised before any mutation becomes visible. The HTTP layer
renders them as ``{"error": code, "detail": message}`` with ``http_status``.
"""
from __future__ import annotations


class LifecycleError(Exception):
    code = "LifecycleError"
    http_status = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class InvalidTransition(LifecycleError):
    """No edge from the entity's current status to the requested one."""
    code = "InvalidTransition"
    http_status = 400


class Unauthorized(LifecycleError):
    """Actor's role (or ownership) does not permit this edge."""
    code = "Unauthorized"
    http_status = 403


class MissingReason(LifecycleError):
    code = "MissingReason"
    http_status = 400


class Conflict(LifecycleError):
    """Lost an optimistic-concurrency race; refetch and retry."""
    code = "Conflict"
    http_status = 409


class StorageError(LifecycleError):
    code = "StorageError"
    http_status = 500


class NotFound(LifecycleError):
    code = "NotFound"
    http_status = 404
