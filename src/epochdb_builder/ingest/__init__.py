"""Template ingestion and namespace classification."""

from .namespace_classifier import NamespaceClassifier
from .template_ingestor import TemplateIngestor

__all__ = ["NamespaceClassifier", "TemplateIngestor"]
