import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from quill_toolkit.core.exceptions import SaveCancelled
from quill_toolkit.core.services.file_saver import FileSaver, write_atomic
from quill_toolkit.core.utils import DOCX_MIME_TYPE


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"


class TestWriteAtomic:
    def test_writes_and_replaces(self, out_dir):
        target = out_dir / "a.docx"
        write_atomic(target, b"first")
        write_atomic(target, b"second")
        assert target.read_bytes() == b"second"
        assert os.listdir(out_dir) == ["a.docx"]

    def test_temporary_file_removed_on_failure(self, out_dir):
        out_dir.mkdir()
        with patch("quill_toolkit.core.services.file_saver.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_atomic(out_dir / "a.docx", b"data")
        assert os.listdir(out_dir) == []


class TestFileSaver:
    """Dialog delivery with a download-directory fallback."""

    def test_download_directory(self, out_dir):
        path = FileSaver(out_dir).save(b"data", "a.docx", DOCX_MIME_TYPE)
        assert path == out_dir / "a.docx"
        assert path.read_bytes() == b"data"

    def test_default_directory_from_config(self):
        assert FileSaver().output_dir == Path(os.path.expanduser("~/Downloads"))

    def test_dialog_path_returned(self, out_dir, tmp_path):
        dialog = Mock(return_value=str(tmp_path / "chosen.docx"))
        path = FileSaver(out_dir, save_dialog=dialog).save(b"data", "a.docx", DOCX_MIME_TYPE)
        dialog.assert_called_once_with(b"data", "a.docx", DOCX_MIME_TYPE)
        assert path == tmp_path / "chosen.docx"
        assert not out_dir.exists()

    def test_cancel_returns_none(self, out_dir):
        dialog = Mock(side_effect=SaveCancelled("a.docx"))
        assert FileSaver(out_dir, save_dialog=dialog).save(b"data", "a.docx", DOCX_MIME_TYPE) is None
        assert not out_dir.exists()

    @pytest.mark.parametrize("dialog", [
        Mock(side_effect=RuntimeError("no display")),
        Mock(return_value=None),
    ])
    def test_dialog_failure_falls_back(self, out_dir, dialog):
        path = FileSaver(out_dir, save_dialog=dialog).save(b"data", "a.docx", DOCX_MIME_TYPE)
        assert path == out_dir / "a.docx"
        assert path.read_bytes() == b"data"
