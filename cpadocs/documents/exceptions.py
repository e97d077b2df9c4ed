class PipelineError(Exception):
    """Base exception for all document pipeline errors."""


class DocumentNotFoundError(PipelineError):
    """Raised when a document does not exist or is not owned by the caller."""


class InvalidTransitionError(PipelineError):
    """Raised when a pipeline step change is not allowed from the current step."""


class ApprovalRequiredError(PipelineError):
    """Raised when specific processing is requested without a classification."""
