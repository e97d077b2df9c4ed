class UploadError(Exception):
    """Raised when a file cannot be stored or recorded."""


class FileValidationError(UploadError):
    """Raised when a file fails size or MIME type validation."""
