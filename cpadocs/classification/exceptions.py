class AnalysisError(Exception):
    """Raised when document analysis fails."""


class AnalysisValidationError(AnalysisError):
    """Raised when the analysis result fails domain validation."""


class AnalysisNetworkError(AnalysisError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
