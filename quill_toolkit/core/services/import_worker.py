from __future__ import annotations

"""Off-thread import channel.

Conversions of large documents run on a dedicated worker thread so the
caller (typically a UI thread) stays responsive.  The caller and the worker
exchange typed messages keyed by a request id:

* requests: ``processDocx {data, file_name}`` and ``processText {text}``;
* responses: ``docxResult``, ``textResult``, ``progress`` and ``error``.

Every pending request resolves exactly once, either with its result or its
error; ``progress`` messages are forwarded to an optional callback, on the
worker thread, and never resolve a request.  A request that does not
complete within its timeout, or one sent to a stopped worker, raises
:class:`WorkerCommunicationError` so the caller can run the same conversion
on its own thread.
"""

import concurrent.futures
import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from quill_toolkit.core.exceptions import DocumentImportError, WorkerCommunicationError
from quill_toolkit.core.importers import DocxImporter, text_to_html

logger = logging.getLogger(__name__)

__all__ = [
    "ImportWorker",
    "WorkerRequest",
    "WorkerResponse",
    "PROCESS_DOCX",
    "PROCESS_TEXT",
    "DOCX_RESULT",
    "TEXT_RESULT",
    "PROGRESS",
    "ERROR",
]

# Request types
PROCESS_DOCX = "processDocx"
PROCESS_TEXT = "processText"

# Response types
DOCX_RESULT = "docxResult"
TEXT_RESULT = "textResult"
PROGRESS = "progress"
ERROR = "error"

REQUEST_TYPES = (PROCESS_DOCX, PROCESS_TEXT)

DEFAULT_TIMEOUT = 30.0

ProgressCallback = Callable[[str], None]


@dataclass(frozen=True)
class WorkerRequest:
    request_id: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkerResponse:
    request_id: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class _Pending:
    future: "concurrent.futures.Future[WorkerResponse]"
    on_progress: Optional[ProgressCallback] = None


class ImportWorker:
    """Single background thread serving import requests in FIFO order.

    Parameters
    ----------
    importer
        Converter used for ``processDocx``; defaults to a fresh
        :class:`DocxImporter`.
    start
        Start the thread immediately (default).  Tests may pass ``False`` to
        exercise the stopped-worker path.
    """

    def __init__(self, importer: Optional[DocxImporter] = None, start: bool = True) -> None:
        self.importer = importer or DocxImporter()
        self._requests: "queue.Queue[Optional[WorkerRequest]]" = queue.Queue()
        self._pending: Dict[str, _Pending] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        if start:
            self.start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._running and self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run, name="quill-import-worker", daemon=True)
        self._thread.start()
        logger.debug("Import worker started")

    def close(self, timeout: float = 5.0) -> None:
        """Stop the worker; requests still pending fail with WorkerCommunicationError."""
        if self._thread is None:
            return
        self._running = False
        self._requests.put(None)
        self._thread.join(timeout)
        self._thread = None

        with self._lock:
            leftovers = list(self._pending.items())
            self._pending.clear()
        for request_id, pending in leftovers:
            pending.future.set_exception(
                WorkerCommunicationError("Import worker stopped", request_id=request_id)
            )
        logger.debug("Import worker stopped (%d pending request(s) failed)", len(leftovers))

    def __enter__(self) -> "ImportWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Caller side
    # ------------------------------------------------------------------
    def request(
        self,
        request_type: str,
        payload: Dict[str, Any],
        timeout: float = DEFAULT_TIMEOUT,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Send one request and block until its result arrives.

        Returns:
            The payload of the ``docxResult`` / ``textResult`` response.

        Raises:
            WorkerCommunicationError: Worker stopped or no answer within *timeout*.
            DocumentImportError: The conversion failed inside the worker.
        """
        if request_type not in REQUEST_TYPES:
            raise ValueError(f"Unknown worker request type: {request_type!r}")
        if not self.running:
            raise WorkerCommunicationError("Import worker is not running")

        request_id = uuid.uuid4().hex
        future: "concurrent.futures.Future[WorkerResponse]" = concurrent.futures.Future()
        with self._lock:
            self._pending[request_id] = _Pending(future, on_progress)
        self._requests.put(WorkerRequest(request_id, request_type, dict(payload)))

        try:
            response = future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as exc:
            with self._lock:
                self._pending.pop(request_id, None)
            logger.warning("Import worker request %s timed out after %.1fs", request_id, timeout)
            raise WorkerCommunicationError(
                f"No response from the import worker within {timeout:g}s",
                request_id=request_id, timeout=timeout, cause=exc,
            ) from exc

        if response.type == ERROR:
            raise DocumentImportError(
                response.payload.get("reason", "corrupt"),
                response.payload.get("file_name"),
                message=response.payload.get("message"),
            )
        return response.payload

    def process_docx(self, data: bytes, file_name: Optional[str] = None,
                     timeout: float = DEFAULT_TIMEOUT,
                     on_progress: Optional[ProgressCallback] = None) -> Tuple[str, str, List[str]]:
        """Convert a .docx on the worker; returns ``(html, plain_text, warnings)``."""
        result = self.request(PROCESS_DOCX, {"data": data, "file_name": file_name}, timeout, on_progress)
        return result["html"], result["plain_text"], list(result.get("warnings", []))

    def process_text(self, text: str, timeout: float = DEFAULT_TIMEOUT) -> str:
        """Convert plain text to editor HTML on the worker."""
        return self.request(PROCESS_TEXT, {"text": text}, timeout)["html"]

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------
    def _run(self) -> None:
        while True:
            request = self._requests.get()
            if request is None:
                break
            self._deliver(self._handle(request))

    def _handle(self, request: WorkerRequest) -> WorkerResponse:
        """Run *request* and return its single resolving response."""
        rid = request.request_id

        def report(message: str) -> None:
            self._deliver(WorkerResponse(rid, PROGRESS, {"message": message}))

        try:
            if request.type == PROCESS_DOCX:
                file_name = request.payload.get("file_name")
                report("Reading document")
                html, plain_text, warnings = self.importer.convert(request.payload["data"], file_name)
                report("Conversion complete")
                return WorkerResponse(rid, DOCX_RESULT, {
                    "html": html, "plain_text": plain_text, "warnings": warnings,
                })
            html = text_to_html(request.payload.get("text", ""))
            return WorkerResponse(rid, TEXT_RESULT, {"html": html})
        except DocumentImportError as exc:
            return WorkerResponse(rid, ERROR, {
                "reason": exc.reason, "file_name": exc.file_name, "message": str(exc),
            })
        except Exception as exc:
            logger.error("Import worker failed on request %s", rid, exc_info=True)
            return WorkerResponse(rid, ERROR, {
                "reason": "corrupt",
                "file_name": request.payload.get("file_name"),
                "message": f"Import failed: {exc}",
            })

    def _deliver(self, response: WorkerResponse) -> None:
        with self._lock:
            if response.type == PROGRESS:
                pending = self._pending.get(response.request_id)
            else:
                pending = self._pending.pop(response.request_id, None)
        if pending is None:
            logger.debug("Dropping %s for unknown or expired request %s", response.type, response.request_id)
            return
        if response.type == PROGRESS:
            if pending.on_progress is not None:
                try:
                    pending.on_progress(response.payload.get("message", ""))
                except Exception:
                    logger.warning("Progress callback raised, ignored", exc_info=True)
            return
        pending.future.set_result(response)
