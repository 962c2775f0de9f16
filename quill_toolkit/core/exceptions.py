from __future__ import annotations

"""Conversion exception classes.

Document-level failures (a corrupt import, a failed serialization) propagate
to the caller as one of these types carrying a reason. Fragment-level
failures such as :class:`ImageResolutionFailure` are raised internally and
recovered where the surrounding conversion can continue.
"""

from typing import Optional

__all__ = [
    "QuillError",
    "DocumentImportError",
    "ImageResolutionFailure",
    "WorkerCommunicationError",
    "ExportSerializationError",
    "SaveCancelled",
]


class QuillError(Exception):
    """Base exception for all conversion errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{super().__str__()} (caused by {type(self.cause).__name__}: {self.cause})"
        return super().__str__()


class DocumentImportError(QuillError):
    """Raised when a binary document cannot be imported.

    ``reason`` is ``"corrupt"`` for an unreadable container and
    ``"unsupported"`` for a readable package that is not a Word document.
    """

    REASONS = ("corrupt", "unsupported")

    def __init__(self, reason: str, file_name: Optional[str] = None,
                 message: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        if reason not in self.REASONS:
            raise ValueError(f"Unknown import failure reason: {reason!r}")
        if message is None:
            subject = file_name or "document"
            message = (f"Cannot read {subject}: the file is damaged"
                       if reason == "corrupt"
                       else f"Cannot read {subject}: not a Word document")
        super().__init__(message, cause)
        self.reason = reason
        self.file_name = file_name


class ImageResolutionFailure(QuillError):
    """Raised when an image source cannot be loaded or decoded."""

    def __init__(self, message: str, source: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        # data URIs can be megabytes long, keep a prefix only
        self.source = source[:80] if source else source


class WorkerCommunicationError(QuillError):
    """Raised when the off-thread import channel cannot deliver a response."""

    def __init__(self, message: str, request_id: Optional[str] = None,
                 timeout: Optional[float] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.request_id = request_id
        self.timeout = timeout


class ExportSerializationError(QuillError):
    """Raised when the assembler fails to produce an output document."""

    def __init__(self, message: str, file_name: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.file_name = file_name


class SaveCancelled(QuillError):
    """Raised by a save dialog when the user dismisses it.

    Not an error for the caller: export entrypoints treat it as a no-op.
    """

    def __init__(self, file_name: Optional[str] = None) -> None:
        super().__init__(f"Save cancelled for {file_name or 'document'}")
        self.file_name = file_name
