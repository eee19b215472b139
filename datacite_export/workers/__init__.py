"""Workers package for background tasks."""

from datacite_export.workers.bundle_export_worker import BundleExportWorker
from datacite_export.workers.deposit_worker import DepositWorker

__all__ = ['BundleExportWorker', 'DepositWorker']
