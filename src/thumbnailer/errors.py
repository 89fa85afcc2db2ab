class ThumbnailError(Exception):
    """Base for failures that map onto a client-facing status code."""
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)


class Forbidden(ThumbnailError):
    status_code = 403
    message = "Forbidden"


class InvalidRequest(ThumbnailError):
    status_code = 400
    message = "Bad request"


class ObjectNotFound(ThumbnailError):
    status_code = 404
    message = "Image not found"


class AccessDenied(ThumbnailError):
    status_code = 403
    message = "Access denied"


class PayloadTooLarge(ThumbnailError):
    status_code = 413
    message = "Image file too large"


class InvalidImage(ThumbnailError):
    status_code = 400
    message = "Invalid image format"


class StorageError(ThumbnailError):
    """S3 failure other than a missing or forbidden key.

    The public message stays generic; ``detail`` is only logged.
    """

    def __init__(self, detail=None):
        super().__init__()
        self.detail = detail
