"""Error taxonomy shared by the service layer and the HTTP surface.

Learn: Services raise these; main.py registers one exception handler that
turns any TaskifyError into `{"error": code, "detail": message}` with the
class's status code. Routes never build error responses by hand.

Delivery failures on live connections are NOT part of this taxonomy:
the hub logs and swallows them, so they never reach an HTTP caller.
"""


class TaskifyError(Exception):
    """Base for every caller-visible error."""

    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MalformedIdError(TaskifyError):
    """Raised when a path id is not a valid store identifier."""

    status_code = 400
    code = "malformed_id"


class InvalidPayloadError(TaskifyError):
    """Raised when a field the relay depends on has the wrong shape."""

    status_code = 422
    code = "invalid_payload"


class StoreUnavailableError(TaskifyError):
    """Raised when the store cannot be reached or rejects the call."""

    status_code = 503
    code = "store_unavailable"
