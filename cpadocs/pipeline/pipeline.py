from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from cpadocs.classification.models import DocumentAnalysis
from cpadocs.documents.models import Document


@dataclass(slots=True)
class PipelineContext:
    document_id: str
    user_id: str
    job_id: int | None = None
    document: Document | None = None
    extracted_text: str = ""
    analysis: DocumentAnalysis | None = None
    ocr_started: bool = False
    notice_id: str | None = None
    warnings: list[str] = field(default_factory=list)
    error_message: str = ""


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
