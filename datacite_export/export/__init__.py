"""Export and deposit workflow."""

from datacite_export.export.bundle import PackagingError, create_bundle
from datacite_export.export.depositor import DepositResult, Depositor
from datacite_export.export.orchestrator import ExportOrchestrator, ExportResult
from datacite_export.export.report import DepositResponse, ErrorLog

__all__ = [
    "DepositResponse",
    "DepositResult",
    "Depositor",
    "ErrorLog",
    "ExportOrchestrator",
    "ExportResult",
    "PackagingError",
    "create_bundle",
]
