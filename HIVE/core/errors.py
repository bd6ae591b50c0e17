# file: HIVE/core/errors.py
"""
Error kinds surfaced by the event lifecycle controller.

Each kind carries the wire ``code`` returned to callers and the HTTP status
the API maps it to, so calling UIs can tell "not logged in", "bad request",
"not found" and "not allowed" apart.
"""


class LifecycleError(Exception):
    code = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": {"status": self.code, "message": self.message}}


class Unauthenticated(LifecycleError):
    code = "unauthenticated"
    status_code = 401


class InvalidArgument(LifecycleError):
    code = "invalid-argument"
    status_code = 400


class NotFound(LifecycleError):
    code = "not-found"
    status_code = 404


class PermissionDenied(LifecycleError):
    code = "permission-denied"
    status_code = 403


class Internal(LifecycleError):
    code = "internal"
    status_code = 500
