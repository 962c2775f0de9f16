import threading
from unittest.mock import Mock

import pytest

from quill_toolkit.core.exceptions import DocumentImportError, WorkerCommunicationError
from quill_toolkit.core.services import ImportWorker


class BlockingImporter:
    """Importer whose conversion waits until the test releases it."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def convert(self, data, file_name=None):
        self.started.set()
        self.release.wait(5)
        return "<p>late</p>", "late", []


@pytest.fixture
def worker():
    with ImportWorker() as running:
        yield running


class TestRequests:
    """Typed requests resolve with their result."""

    def test_process_docx(self, worker, sample_docx):
        html, plain_text, warnings = worker.process_docx(sample_docx, "chapter.docx")
        assert '<h1 class="chapter-heading">Chapter One</h1>' in html
        assert plain_text.startswith("Chapter One")
        assert warnings == []

    def test_progress_messages(self, worker, sample_docx):
        messages = []
        worker.process_docx(sample_docx, "chapter.docx", on_progress=messages.append)
        assert messages == ["Reading document", "Conversion complete"]

    def test_failing_progress_callback_ignored(self, worker, sample_docx):
        html, _, _ = worker.process_docx(sample_docx, on_progress=Mock(side_effect=RuntimeError))
        assert "Chapter One" in html

    def test_process_text(self, worker):
        assert worker.process_text("a\n\nb").count("<p ") == 2

    def test_unknown_request_type(self, worker):
        with pytest.raises(ValueError):
            worker.request("processPdf", {})


class TestErrors:
    """Failures come back as exceptions on the calling thread."""

    def test_import_error_reraised(self, worker):
        with pytest.raises(DocumentImportError) as info:
            worker.process_docx(b"not a zip", "bad.docx")
        assert info.value.reason == "corrupt"
        assert info.value.file_name == "bad.docx"

    def test_unexpected_error_is_corrupt(self):
        importer = Mock()
        importer.convert.side_effect = RuntimeError("boom")
        with ImportWorker(importer) as worker:
            with pytest.raises(DocumentImportError) as info:
                worker.process_docx(b"data", "x.docx")
        assert info.value.reason == "corrupt"
        assert "boom" in str(info.value)

    def test_timeout(self):
        importer = BlockingImporter()
        with ImportWorker(importer) as worker:
            with pytest.raises(WorkerCommunicationError) as info:
                worker.process_docx(b"data", "slow.docx", timeout=0.05)
            assert info.value.timeout == 0.05
            assert info.value.request_id
            importer.release.set()
            # the late result is dropped and the worker keeps serving
            assert "<p" in worker.process_text("next", timeout=5)

    def test_stopped_worker(self):
        worker = ImportWorker(start=False)
        assert not worker.running
        with pytest.raises(WorkerCommunicationError):
            worker.process_text("x")

    def test_closed_worker(self):
        worker = ImportWorker()
        worker.close()
        assert not worker.running
        with pytest.raises(WorkerCommunicationError):
            worker.process_text("x")
