"""Error taxonomy shared by the services and the HTTP layer.

Every failure the controller reports is a :class:`ControllerError`; the
subclass decides the tag and the HTTP status the routers answer with.
"""


class ControllerError(Exception):
    code = "internal"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(ControllerError):
    code = "not_found"
    status_code = 404


class ForbiddenError(ControllerError):
    code = "forbidden"
    status_code = 403


class BadInputError(ControllerError):
    code = "bad_input"
    status_code = 400


class MalformedManifestError(BadInputError):
    code = "malformed_manifest"


class ConflictError(ControllerError):
    code = "conflict"
    status_code = 409


class CanceledError(ControllerError):
    code = "canceled"
    # nginx convention for "client closed request"
    status_code = 499


class UpstreamError(ControllerError):
    """Blob store or relational store failure; callers may retry."""

    code = "upstream"
    status_code = 502


class InternalError(ControllerError):
    code = "internal"
    status_code = 500
