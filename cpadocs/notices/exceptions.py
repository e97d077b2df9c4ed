class NoticeError(Exception):
    """Base exception for notice persistence errors."""


class DuplicateNoticeError(NoticeError):
    """Raised when a notice already references the same document."""


class NoticeNotFoundError(NoticeError):
    """Raised when a notice cannot be found for the caller."""
