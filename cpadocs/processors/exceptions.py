class ProcessorError(Exception):
    """Raised when type-specific processing cannot complete."""


class ProviderError(ProcessorError):
    """Raised when the document AI provider is unreachable or answers with an error."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnsupportedClassificationError(ProcessorError):
    """Raised when no processor exists for a classification (e.g. Unknown)."""
