"""Deposit of one serialized DataCite document and the resulting status update."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from datacite_export.api.datacite_client import DataCiteAPIError, DepositStrategy, TransportError
from datacite_export.config import DataciteSettings
from datacite_export.mapping.datacite_xml import create_test_doi
from datacite_export.models import DoiStatus, Exportable, PressContext, Publication, object_key
from datacite_export.repositories import DoiStatusStore
from datacite_export.utils.url_builder import LandingPageUrlBuilder

logger = logging.getLogger(__name__)


@dataclass
class DepositResult:
    """Result of a single deposit; ``errors`` holds (object key, detail) pairs."""

    ok: bool
    errors: List[Tuple[str, str]] = field(default_factory=list)
    message: str = ""
    status_code: Optional[int] = None


def is_redeposit(entity: Exportable) -> bool:
    """A DOI that was registered before (or went stale) is deposited again."""
    record = entity.doi_object
    return record is not None and record.status in (DoiStatus.REGISTERED, DoiStatus.STALE)


class Depositor:
    """Sends an exported document to DataCite and records the DOI status."""

    def __init__(
        self,
        context: PressContext,
        settings: DataciteSettings,
        strategy: DepositStrategy,
        status_store: DoiStatusStore,
        url_builder: Optional[LandingPageUrlBuilder] = None
    ):
        self.context = context
        self.settings = settings
        self.strategy = strategy
        self.status_store = status_store
        self.url_builder = url_builder or LandingPageUrlBuilder(context, settings.test_mode)

    def deposit(self, entity: Exportable, parent: Optional[Publication], xml_path: str) -> DepositResult:
        """
        Deposit the document at ``xml_path`` for an entity.

        Provider errors are not raised; they mark the DOI as ``error`` and are
        returned in the result.

        Args:
            entity: Entity the document was exported from
            parent: Parent publication of a chapter or format
            xml_path: Path of the serialized DataCite XML

        Returns:
            DepositResult
        """
        key = object_key(entity)
        doi = entity.doi
        if self.settings.test_mode:
            doi = create_test_doi(doi, self.settings.test_doi_prefix)
        url = self.url_builder.get_url(entity, parent)

        with open(xml_path, 'rb') as f:
            xml = f.read()

        try:
            message = self.strategy.submit(doi, url, xml, is_redeposit(entity))
        except DataCiteAPIError as e:
            logger.error(f"Deposit of {key} ({doi}) failed: {e}")
            self.status_store.update_status(entity, DoiStatus.ERROR)
            status_code = e.status_code if isinstance(e, TransportError) else None
            return DepositResult(
                ok=False,
                errors=[(key, f"Registering DOI {doi}: {str(e)}")],
                message=str(e),
                status_code=status_code,
            )

        # Test deposits leave the stored status untouched
        if not self.settings.test_mode:
            self.status_store.update_status(
                entity, DoiStatus.REGISTERED, self.settings.registration_agency
            )
        logger.info(f"Deposited {key} ({doi}) -> {url}")
        return DepositResult(ok=True, message=message)
