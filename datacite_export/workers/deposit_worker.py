"""Worker for depositing a batch of DOIs with DataCite."""

import logging
from typing import List

from PySide6.QtCore import QObject, Signal

from datacite_export.export.orchestrator import ExportOrchestrator
from datacite_export.models import Exportable

logger = logging.getLogger(__name__)


class DepositWorker(QObject):
    """Runs ExportOrchestrator.export_and_deposit and reports through Qt signals."""

    # Signals
    progress_update = Signal(int, int, str)  # current, total, object key
    entity_deposited = Signal(str, bool, str)  # object key, success, report line
    finished = Signal(bool, str)  # success, report
    error_occurred = Signal(str)  # error message

    def __init__(self, orchestrator: ExportOrchestrator, entities: List[Exportable]):
        """
        Initialize the deposit worker.

        Args:
            orchestrator: Orchestrator configured for the press
            entities: Publications, chapters and formats to deposit
        """
        super().__init__()
        self.orchestrator = orchestrator
        self.entities = list(entities)

    def run(self):
        """Deposit all entities. Call directly or from QThread.started."""
        logger.info(f"Deposit worker started for {len(self.entities)} object(s)")
        try:
            success, report = self.orchestrator.export_and_deposit(
                self.entities,
                progress_callback=self.progress_update.emit,
                result_callback=self.entity_deposited.emit,
            )
        except Exception as e:
            logger.exception("Unexpected error in deposit worker")
            self.error_occurred.emit(f"Unexpected error ({type(e).__name__}): {str(e)}")
            return

        self.finished.emit(success, report)
