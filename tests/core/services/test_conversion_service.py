from unittest.mock import Mock

import pytest

from quill_toolkit.core.exceptions import DocumentImportError, SaveCancelled, WorkerCommunicationError
from quill_toolkit.core.models import Callout, block_text
from quill_toolkit.core.services import ConversionService, FileSaver, ImportWorker
from quill_toolkit.core.services.conversion_service import extract_document_title, has_explicit_title


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "exports"


@pytest.fixture
def service(store, out_dir):
    return ConversionService(store=store, saver=FileSaver(out_dir))


def texts(blocks):
    return [block_text(block) for block in blocks]


class TestTitles:
    """Document title lookup order."""

    @pytest.mark.parametrize("html, expected", [
        ('<h1>Other</h1><h1 class="doc-title">Book</h1>', "Book"),
        ('<p class="book-title">Saga</p><h1>Main</h1>', "Saga"),
        ('<h2>Part</h2><h1>Main</h1>', "Main"),
        ('<p class="title-content">Short</p><h3>Section</h3>', "Short"),
        (f'<p class="title-content">{"x" * 150}</p><h3>Section</h3>', "Section"),
    ])
    def test_lookup(self, html, expected):
        assert extract_document_title(html, "file.docx") == expected

    def test_file_name_fallback(self):
        assert extract_document_title("<p>Just text</p>", "drafts/notes.docx") == "notes"
        assert extract_document_title("", None) == "Untitled Document"

    def test_file_name_fallback_is_sanitized(self):
        assert extract_document_title("<p>Just text</p>", "Draft\x07.docx") == "Draft"
        assert extract_document_title("", "\x07.docx") == "Untitled Document"

    def test_explicit_title(self):
        assert has_explicit_title('<h1>T</h1>')
        assert has_explicit_title('<p class="book-title">T</p>')
        assert not has_explicit_title('<h2>T</h2>')
        assert not has_explicit_title("")


class TestImport:
    def test_inline_import(self, service, store, sample_docx):
        result = service.import_docx(sample_docx, "chapter.docx")
        assert "chapter-heading" in result.html
        assert store.get_original(result.document_id) == sample_docx

    def test_import_from_path(self, service, sample_docx, tmp_path):
        path = tmp_path / "story.docx"
        path.write_bytes(sample_docx)
        result = service.import_docx(path)
        assert result.metadata.file_name == "story.docx"

    def test_import_through_worker(self, store, out_dir, sample_docx):
        messages = []
        with ImportWorker() as worker:
            service = ConversionService(store=store, worker=worker, saver=FileSaver(out_dir))
            result = service.import_docx(sample_docx, "chapter.docx", on_progress=messages.append)
        assert "Item one" in result.html
        assert messages == ["Reading document", "Conversion complete"]
        assert result.document_id in store

    def test_worker_failure_falls_back_inline(self, store, out_dir, sample_docx):
        worker = Mock()
        worker.process_docx.side_effect = WorkerCommunicationError("Import worker is not running")
        worker.process_text.side_effect = WorkerCommunicationError("Import worker is not running")
        service = ConversionService(store=store, worker=worker, saver=FileSaver(out_dir))
        assert "chapter-heading" in service.import_docx(sample_docx).html
        assert service.import_text("hello").startswith("<p ")

    def test_failed_import_stores_nothing(self, service, store):
        with pytest.raises(DocumentImportError):
            service.import_docx(b"junk", "junk.docx")
        assert len(store) == 0

    def test_original_not_preserved(self, service, store, sample_docx):
        service.import_docx(sample_docx, preserve_original=False)
        assert len(store) == 0


class TestBuildBlocks:
    """The shared export pipeline."""

    HTML = (
        '<h1 class="doc-title">Book</h1>'
        '<p class="doc-subtitle">Sub</p>'
        '<div class="spacing-indicator"><span class="spacing-label">Spacing</span></div>'
        '<p>Body</p>'
    )

    def test_writer_mode_drops_highlights(self, service):
        blocks, title, options = service.build_blocks("", self.HTML, analysis={"overallScore": 50})
        assert title == "Book"
        assert texts(blocks) == ["Book", "Sub", "Body"]
        assert options.include_highlights is False

    def test_analysis_mode_summary_after_title(self, service):
        options = service.default_options(mode="analysis", include_highlights=True)
        blocks, _, _ = service.build_blocks("", self.HTML, analysis={"overallScore": 50}, options=options)
        result = texts(blocks)
        assert result[:3] == ["Book", "Sub", "Analysis Summary"]
        assert result.index("Edited Chapter Text") < result.index("Spacing")
        assert isinstance(blocks[-2], Callout)
        assert result[-1] == "Body"

    def test_writer_mode_drops_nested_callout(self, service):
        html = (
            '<h1>Book</h1><section><div class="dual-coding-callout">'
            '<span class="callout-title">Visual</span>'
            '<p class="callout-action">Add a diagram</p></div></section><p>Body</p>'
        )
        blocks, _, _ = service.build_blocks("", html)
        assert texts(blocks) == ["Book", "Body"]

    def test_title_from_dirty_file_name(self, service):
        blocks, title, _ = service.build_blocks("", "<p>Body</p>", file_name="Draft\x07.docx")
        assert title == "Draft"
        assert blocks[0].runs[0].text == "Draft"

    def test_title_inserted_when_missing(self, service):
        blocks, title, _ = service.build_blocks("", "<p>Body</p>", file_name="story.docx")
        assert title == "story"
        assert blocks[0].style_name == "Title"
        assert texts(blocks) == ["story", "Body"]

    def test_plain_text_fallback(self, service):
        blocks, _, _ = service.build_blocks("Para one\n\nPara two", "")
        assert texts(blocks) == ["Untitled Document", "Para one", "Para two"]

    def test_toc_placeholder(self, service):
        _, _, options = service.build_blocks("", '<div class="toc-placeholder"></div><h1>One</h1>')
        assert options.include_toc is True
        _, _, options = service.build_blocks("", "<h1>One</h1>")
        assert options.include_toc is False


class TestExport:
    def test_build_docx(self, service, reopen):
        doc = reopen(service.build_docx("", "<h2>Part</h2><p>Body</p>", "story.docx", author="Ann"))
        assert [p.style.name for p in doc.paragraphs[:2]] == ["Title", "Heading 2"]
        assert doc.core_properties.title == "Part"
        assert doc.core_properties.author == "Ann"

    def test_build_docx_with_dirty_file_name(self, service, reopen):
        doc = reopen(service.build_docx("", "<p>Body</p>", "Draft\x07.docx"))
        assert doc.core_properties.title == "Draft"
        assert doc.paragraphs[0].text == "Draft"

    def test_export_name_keeps_inner_periods(self, service, out_dir):
        path = service.export_to_html("", '<h1 class="doc-title">Dr. Jekyll</h1><p>Body</p>')
        assert path == out_dir / "Dr. Jekyll.html"
        path = service.export_to_docx("", "<p>Body</p>", "Chapter 1. The Start")
        assert path == out_dir / "Chapter 1. The Start.docx"

    def test_stored_original_used_as_template(self, service, docx_bytes, reopen):
        def build(document):
            document.styles["Normal"].font.name = "Arial"
            document.add_paragraph("Original")
        result = service.import_docx(docx_bytes(build), "styled.docx")
        doc = reopen(service.build_docx("", result.html, "styled.docx", document_id=result.document_id))
        assert doc.styles["Normal"].font.name == "Arial"

    def test_export_to_docx(self, service, out_dir):
        path = service.export_to_docx("", "<p>Body</p>", "chapter.txt")
        assert path == out_dir / "chapter.docx"
        assert path.read_bytes()[:2] == b"PK"

    def test_export_to_html_named_after_title(self, service, out_dir):
        path = service.export_to_html("", '<h1 class="doc-title">My Book v1.2</h1><p>Body</p>', "x.docx")
        assert path == out_dir / "My Book v1.2.html"
        page = path.read_text(encoding="utf-8")
        assert "<title>My Book v1.2</title>" in page
        assert 'class="doc-title"' in page

    def test_html_export_with_analysis(self, service):
        page, title = service.build_html("", "<p>Body</p>", "story.docx", analysis={"overallScore": 64})
        assert title == "story"
        assert "Overall Score: 64/100" in page

    def test_cancelled_export(self, store, out_dir):
        saver = FileSaver(out_dir, save_dialog=Mock(side_effect=SaveCancelled()))
        service = ConversionService(store=store, saver=saver)
        assert service.export_to_docx("", "<p>Body</p>", "a.docx") is None
        assert not out_dir.exists()
