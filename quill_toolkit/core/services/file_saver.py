from __future__ import annotations

"""Delivery of exported files to the user.

An embedding application can inject a *save dialog*: a callable receiving
``(data, file_name, mime_type)`` that writes the file where the user chose
and returns the path, or raises :class:`SaveCancelled` when the user backs
out.  Any other dialog failure falls back to writing into the download
directory, the same as when no dialog is injected.

Public API:
- FileSaver.save(data, file_name, mime_type) -> Path | None
- write_atomic(path, data) -> Path
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Union

from quill_toolkit.config import ConfigManager
from quill_toolkit.core.exceptions import SaveCancelled

logger = logging.getLogger(__name__)

__all__ = ["FileSaver", "SaveDialog", "write_atomic", "DEFAULT_DOWNLOAD_DIR"]

DEFAULT_DOWNLOAD_DIR = "~/Downloads"

SaveDialog = Callable[[bytes, str, str], Union[str, Path, None]]


def write_atomic(path: Path, data: bytes) -> Path:
    """Write *data* to *path* through a temporary file in the same directory.

    Readers never observe a partially written file: the temporary file is
    moved over *path* only once it has been flushed completely.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".quill_", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    return path


class FileSaver:
    """Save exported bytes through a dialog or into the download directory.

    Parameters
    ----------
    output_dir
        Fallback directory; ``None`` reads ``download_dir`` from the export
        configuration.
    save_dialog
        Optional user-facing save dialog, see module docstring.
    """

    def __init__(self, output_dir: Optional[Union[str, Path]] = None,
                 save_dialog: Optional[SaveDialog] = None) -> None:
        if output_dir is None:
            output_dir = ConfigManager().get_export_defaults().get("download_dir") or DEFAULT_DOWNLOAD_DIR
        self.output_dir = Path(os.path.expanduser(str(output_dir)))
        self.save_dialog = save_dialog

    def save(self, data: bytes, file_name: str, mime_type: str) -> Optional[Path]:
        """Deliver *data* as *file_name*; return the written path or ``None`` if cancelled."""
        if self.save_dialog is not None:
            try:
                chosen = self.save_dialog(data, file_name, mime_type)
            except SaveCancelled:
                logger.info("Save of %s cancelled by the user", file_name)
                return None
            except Exception as exc:
                logger.warning("Save dialog failed for %s (%s), falling back to %s",
                               file_name, exc, self.output_dir)
            else:
                if chosen is not None:
                    logger.info("Saved %s through the save dialog", chosen)
                    return Path(chosen)
                logger.warning("Save dialog returned no path for %s, falling back to %s",
                               file_name, self.output_dir)

        path = write_atomic(self.output_dir / file_name, data)
        logger.info("Export OK: %s written (%d bytes, %s)", path, len(data), mime_type)
        return path
