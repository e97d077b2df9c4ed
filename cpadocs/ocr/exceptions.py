class TextExtractionError(Exception):
    """Raised when text cannot be extracted from a stored file."""
