from .registry import DocumentHandler, DocumentHandlerRegistry
from .coordinator import ArtifactCoordinator, CreateInput, UpdateInput
from .chart import chart_document_handler
from .text import text_document_handler

__all__ = [
    "DocumentHandler",
    "DocumentHandlerRegistry",
    "ArtifactCoordinator",
    "CreateInput",
    "UpdateInput",
    "chart_document_handler",
    "text_document_handler",
    "build_registry",
]


def build_registry(provider) -> DocumentHandlerRegistry:
    registry = DocumentHandlerRegistry([text_document_handler(provider), chart_document_handler()])
    return registry.freeze()
