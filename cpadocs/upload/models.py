import mimetypes
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from cpadocs.documents.models import Document, DocumentCategory

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadFile:
    """An in-memory file handed to the upload orchestrator."""

    filename: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path | str, mime_type: str | None = None) -> "UploadFile":
        """Read a file from disk, guessing its MIME type from the extension."""
        path = Path(path)
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
        )


@dataclass(frozen=True)
class UploadOptions:
    category: DocumentCategory | None = None
    client_id: str | None = None
    tags: list[str] = field(default_factory=list)
    enable_ocr: bool = True
    enable_ai: bool = True
    auto_classify: bool = True


class UploadStatus(StrEnum):
    PENDING = "pending"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class UploadProgress:
    filename: str
    progress: int = 0
    status: UploadStatus = UploadStatus.PENDING
    error: str | None = None
    document_id: str | None = None


@dataclass(frozen=True)
class UploadResult:
    document: Document | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
