class PasteError(Exception):
    """Base error for paste operations. Carries the HTTP status it maps to."""

    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(PasteError):
    status_code = 400
    default_message = "invalid content"


class NotFound(PasteError):
    status_code = 404
    default_message = "not found"


class Expired(PasteError):
    status_code = 410
    default_message = "gone"


class Forbidden(PasteError):
    status_code = 403
    default_message = "forbidden"


class Unauthorized(PasteError):
    status_code = 401
    default_message = "unauthorized"


class StorageFailure(PasteError):
    status_code = 500
    default_message = "db error"
