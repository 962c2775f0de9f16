"""Shared fixtures for the quill-toolkit test-suite.

Documents and images are built in memory with python-docx and Pillow so the
tests never depend on binary fixture files.
"""

import base64
import io
import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import docx
from PIL import Image

from quill_toolkit.config import ConfigManager
from quill_toolkit.core.document_store import DocumentStore

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """Give every test a fresh ConfigManager without user overrides."""
    ConfigManager._instance = None
    manager = ConfigManager(user_config_dir=tmp_path / "user_config")
    yield manager
    ConfigManager._instance = None


@pytest.fixture
def make_image():
    """Factory returning encoded image bytes of the requested size and format."""
    def _make(width=40, height=20, fmt="PNG", color=(200, 30, 30)):
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color).save(buffer, format=fmt)
        return buffer.getvalue()
    return _make


@pytest.fixture
def png_bytes(make_image):
    return make_image()


@pytest.fixture
def png_data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def docx_bytes():
    """Factory serializing a python-docx Document built by *build*."""
    def _make(build=None):
        document = docx.Document()
        if build is not None:
            build(document)
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()
    return _make


@pytest.fixture
def sample_docx(docx_bytes):
    """A short chapter: heading, body paragraphs, a quote and two lists."""
    def build(document):
        document.add_heading("Chapter One", level=1)
        document.add_paragraph("First paragraph after the heading.")
        paragraph = document.add_paragraph()
        paragraph.add_run("Bold").bold = True
        paragraph.add_run(" and ")
        paragraph.add_run("italic").italic = True
        document.add_paragraph("Quoted", style="Quote")
        document.add_paragraph("Item one", style="List Bullet")
        document.add_paragraph("Item two", style="List Bullet")
        document.add_paragraph("Step", style="List Number")
    return docx_bytes(build)


@pytest.fixture
def store():
    return DocumentStore()


def open_docx(data):
    """Re-open serialized .docx bytes with python-docx."""
    return docx.Document(io.BytesIO(data))


@pytest.fixture
def reopen():
    return open_docx
