from __future__ import annotations

"""Import-side value objects."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Tuple

__all__ = ["DocumentMetadata", "ImportResult"]


@dataclass(frozen=True)
class DocumentMetadata:
    """Facts captured once when a document is imported.

    Attributes
    ----------
    file_name
        Name the document was imported under.
    uploaded_at
        Import timestamp (UTC).
    original_size_bytes
        Size of the original binary.
    has_images
        True when the produced HTML contains at least one ``<img``.
    detected_styles
        Editor classes found in the produced HTML, in canonical order.
    """

    file_name: str
    uploaded_at: datetime
    original_size_bytes: int
    has_images: bool
    detected_styles: Tuple[str, ...] = ()


@dataclass
class ImportResult:
    document_id: str
    html: str
    plain_text: str
    metadata: DocumentMetadata
    warnings: List[str] = field(default_factory=list)
