"""Worker for exporting DataCite XML as a download."""

import logging
from typing import List, Optional

from PySide6.QtCore import QObject, Signal

from datacite_export.export.orchestrator import ExportOrchestrator
from datacite_export.models import Exportable

logger = logging.getLogger(__name__)


class BundleExportWorker(QObject):
    """Writes one XML file, or a .tar.gz bundle of several, in a separate thread."""

    # Signals
    progress = Signal(str)  # Progress message
    finished = Signal(str, int)  # export path, number of failed objects
    error = Signal(str)  # Error message

    def __init__(
        self,
        orchestrator: ExportOrchestrator,
        entities: List[Exportable],
        output_dir: Optional[str] = None
    ):
        super().__init__()
        self.orchestrator = orchestrator
        self.entities = list(entities)
        self.output_dir = output_dir

    def run(self):
        """Execute the export."""
        try:
            self.progress.emit(f"Exporting {len(self.entities)} object(s)...")
            result = self.orchestrator.export_as_download(self.entities, self.output_dir)
        except Exception as e:
            logger.exception("Unexpected error in bundle export worker")
            self.error.emit(f"Unexpected error ({type(e).__name__}): {str(e)}")
            return

        for key, message in result.errors:
            self.progress.emit(f"[ERROR] {key}: {message}")

        if result.path is None:
            self.error.emit("Nothing was exported")
            return

        self.progress.emit(f"[OK] Export written to {result.path}")
        self.finished.emit(result.path, len(result.errors))
