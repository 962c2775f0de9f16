from __future__ import annotations

"""Session-scoped storage for imported original documents.

Keeps the original .docx binary and its :class:`DocumentMetadata` in memory,
keyed by document id, so a later export can reuse the original as a style
template.  One store is created per editing session and injected into the
services that need it; there is no process-global instance.

Public API:
- DocumentStore.put(document_id, data, metadata) -> None
- DocumentStore.has_original(document_id) -> bool
- DocumentStore.get_original(document_id) -> bytes | None
- DocumentStore.get_metadata(document_id) -> DocumentMetadata | None
- DocumentStore.release(document_id) -> bool
- DocumentStore.clear() -> None
"""

import logging
import threading
from typing import Dict, Optional, Tuple

from quill_toolkit.core.models import DocumentMetadata

logger = logging.getLogger(__name__)

__all__ = ["DocumentStore"]


class DocumentStore:
    """Thread-safe in-memory map ``document_id -> (original bytes, metadata)``.

    The import worker thread and the calling thread may both touch the
    store, every access goes through one lock.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[bytes, DocumentMetadata]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, document_id: object) -> bool:
        with self._lock:
            return document_id in self._entries

    def put(self, document_id: str, data: bytes, metadata: DocumentMetadata) -> None:
        """Store a copy of *data* and its metadata under *document_id*."""
        with self._lock:
            if document_id in self._entries:
                logger.warning("Replacing stored original for %s", document_id)
            self._entries[document_id] = (bytes(data), metadata)
        logger.debug("Stored original %s (%d bytes)", document_id, len(data))

    def has_original(self, document_id: Optional[str]) -> bool:
        if not document_id:
            return False
        with self._lock:
            return document_id in self._entries

    def get_original(self, document_id: Optional[str]) -> Optional[bytes]:
        if not document_id:
            return None
        with self._lock:
            entry = self._entries.get(document_id)
        return entry[0] if entry else None

    def get_metadata(self, document_id: Optional[str]) -> Optional[DocumentMetadata]:
        if not document_id:
            return None
        with self._lock:
            entry = self._entries.get(document_id)
        return entry[1] if entry else None

    def release(self, document_id: str) -> bool:
        """Forget *document_id*; return True when something was removed."""
        with self._lock:
            removed = self._entries.pop(document_id, None) is not None
        if removed:
            logger.debug("Released original %s", document_id)
        return removed

    def clear(self) -> None:
        """Drop every stored document (end of session)."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug("Cleared document store (%d entries)", count)
