"""
Domain errors raised by the service layer.

Routes never build error responses themselves: every error below carries the
HTTP status it maps to, and ``main`` installs one handler that renders it as
``{"detail": message}``.
"""


class ExamPortalError(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(ExamPortalError):
    status_code = 400
    default_detail = "Invalid request"


class AuthError(ExamPortalError):
    status_code = 401
    default_detail = "Not authorized"


class PermissionDeniedError(ExamPortalError):
    status_code = 403
    default_detail = "Admin access required"


class NotFoundError(ExamPortalError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(ExamPortalError):
    status_code = 409
    default_detail = "Conflict"
