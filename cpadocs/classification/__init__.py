from cpadocs.classification.analyzer import DocumentAnalyzer
from cpadocs.classification.base import BaseDocumentAnalyzer
from cpadocs.classification.factory import AnalyzerFactory
from cpadocs.classification.keyword_classifier import classify_by_keywords
from cpadocs.classification.models import DocumentAnalysis

__all__ = [
    "AnalyzerFactory",
    "BaseDocumentAnalyzer",
    "DocumentAnalysis",
    "DocumentAnalyzer",
    "classify_by_keywords",
]
