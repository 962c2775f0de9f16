from __future__ import annotations

"""High-level orchestration services (conversion, off-thread import, saving).

Services are instantiated directly; their collaborators (document store,
worker, saver) are injected so each editing session owns its own set.
"""

from .conversion_service import ConversionService  # noqa: F401
from .file_saver import FileSaver  # noqa: F401
from .import_worker import ImportWorker  # noqa: F401

__all__: list[str] = [
    "ConversionService",
    "FileSaver",
    "ImportWorker",
]
