from cpadocs.upload.exceptions import FileValidationError
from cpadocs.upload.models import UploadFile

MAX_FILE_SIZE = 50 * 1024 * 1024

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/webp",
        "text/plain",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
    }
)


def validate_file(file: UploadFile, max_size: int = MAX_FILE_SIZE) -> None:
    """Check size and MIME type before any I/O.

    Raises:
        FileValidationError: with a message suitable for display.
    """
    if file.size > max_size:
        raise FileValidationError(f"File size must be less than {round(max_size / 1024 / 1024)}MB")
    if file.mime_type not in ALLOWED_MIME_TYPES:
        raise FileValidationError(
            "File type not supported. Please upload PDF, images, or document files."
        )
