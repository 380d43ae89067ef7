"""Editor package containing document models and the workspace text buffer."""

from .document_model import DocumentMetadata, DocumentState, DocumentVersion
from .workspace import DocumentWorkspace

__all__ = ["DocumentMetadata", "DocumentState", "DocumentVersion", "DocumentWorkspace"]
