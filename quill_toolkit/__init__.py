"""Top-level package for quill-toolkit.

Converts between the manuscript editor's HTML and Word (.docx) documents.
Front-ends should only depend on the public API exposed here rather than
importing internal modules directly.
"""

from .core.document_store import DocumentStore
from .core.exceptions import (
    DocumentImportError,
    ExportSerializationError,
    QuillError,
    SaveCancelled,
    WorkerCommunicationError,
)
from .core.services import ConversionService, FileSaver, ImportWorker

__version__ = "0.1.0"

__all__: list[str] = [
    "ConversionService",
    "DocumentStore",
    "FileSaver",
    "ImportWorker",
    "QuillError",
    "DocumentImportError",
    "ExportSerializationError",
    "SaveCancelled",
    "WorkerCommunicationError",
]
