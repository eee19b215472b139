"""Batch export of publications, chapters and formats to DataCite."""

import logging
import os
import tempfile
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from datacite_export.api.datacite_client import DepositStrategy, create_deposit_strategy
from datacite_export.cache import (
    CACHE_CHAPTERS_BY_PUBLICATION,
    CACHE_FORMATS_BY_PUBLICATION,
    CACHE_PUBLICATION,
    PubObjectCache,
)
from datacite_export.config import ConfigurationError, DataciteSettings
from datacite_export.export.bundle import PackagingError, create_bundle
from datacite_export.export.depositor import Depositor, is_redeposit
from datacite_export.export.report import (
    ACTION_DEPOSIT,
    ACTION_REDEPOSIT,
    RESPONSE_STATUS_ERROR,
    RESPONSE_STATUS_SUCCESS,
    DepositResponse,
    ErrorLog,
    render_report,
    report_is_successful,
)
from datacite_export.mapping.datacite_xml import DataciteXmlMapper, MappingError
from datacite_export.mapping.locales import get_primary_translation, resolve_precedence
from datacite_export.mapping.node import SerializationError, serialize_resource
from datacite_export.models import (
    DOI_TYPE_CHAPTER,
    DOI_TYPE_PUBLICATION,
    DOI_TYPE_REPRESENTATION,
    Chapter,
    DoiStatus,
    Exportable,
    PressContext,
    Publication,
    PublicationFormat,
    object_key,
)
from datacite_export.repositories import CatalogRepository, DoiStatusStore
from datacite_export.utils.text_utils import html_to_text
from datacite_export.utils.url_builder import LandingPageUrlBuilder

logger = logging.getLogger(__name__)

EXPORT_FILE_PREFIX = "datacite"

ProgressCallback = Callable[[int, int, str], None]
ResultCallback = Callable[[str, bool, str], None]


@dataclass
class ExportResult:
    """Outcome of an export for download; ``path`` is None when nothing was exported."""

    path: Optional[str]
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.path is not None and not self.errors


class ExportOrchestrator:
    """
    Export entities of one press to DataCite, or into a downloadable file.

    Entities are processed one after the other, in the given order. A failing
    entity is reported and the batch continues; only a configuration problem
    stops a deposit batch before any request is made. The object cache lives
    as long as the orchestrator, so an orchestrator should serve one batch.
    """

    def __init__(
        self,
        context: PressContext,
        settings: DataciteSettings,
        repository: CatalogRepository,
        status_store: DoiStatusStore,
        strategy: Optional[DepositStrategy] = None,
        export_path: Optional[str] = None,
        error_log: Optional[ErrorLog] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            context: Press the entities belong to
            settings: DataCite settings of the press
            repository: Catalog used to resolve parent publications and children
            status_store: Persistence of DOI status
            strategy: Deposit client; created from the settings if None
            export_path: Directory for transient export files (default: settings, then temp dir)
            error_log: Log of failed deposits (default: settings.error_log_path, if set)
        """
        self.context = context
        self.settings = settings
        self.repository = repository
        self.status_store = status_store
        self._strategy = strategy
        self.export_path = export_path or settings.export_path or tempfile.gettempdir()
        if error_log is None and settings.error_log_path:
            error_log = ErrorLog(settings.error_log_path)
        self.error_log = error_log

        self.cache = PubObjectCache()
        self.url_builder = LandingPageUrlBuilder(context, settings.test_mode)
        self.mapper = DataciteXmlMapper(context, settings, self.url_builder)

    #
    # Deposit
    #
    def export_and_deposit(
        self,
        entities: Sequence[Exportable],
        progress_callback: Optional[ProgressCallback] = None,
        result_callback: Optional[ResultCallback] = None
    ) -> Tuple[bool, str]:
        """
        Export and deposit every entity of a batch.

        Args:
            entities: Publications, chapters and publication formats
            progress_callback: Called as (current, total, object key) before each entity
            result_callback: Called as (object key, ok, report line) after each deposit

        Returns:
            Tuple of (success, report). Success is False if any entity failed
            or the configuration is incomplete.
        """
        try:
            self.settings.validate(self.context)
        except ConfigurationError as e:
            logger.error(f"Deposit blocked for press '{self.context.path}': {e}")
            return False, f"Configuration error: {str(e)}"

        depositor = Depositor(
            self.context,
            self.settings,
            self._strategy or create_deposit_strategy(self.settings),
            self.status_store,
            self.url_builder,
        )

        responses: "OrderedDict[str, DepositResponse]" = OrderedDict()
        total = len(entities)
        logger.info(f"Depositing {total} object(s) for press '{self.context.path}'")

        for index, entity in enumerate(entities, start=1):
            key = object_key(entity)
            if progress_callback:
                progress_callback(index, total, key)

            if key in responses:
                logger.warning(f"Skipping {key}: already deposited in this batch")
                continue
            if self.is_marked_registered(entity):
                logger.info(f"Skipping {key}: registered outside of this export")
                continue

            response = self._deposit_entity(entity, depositor)
            responses[key] = response
            if not response.ok and self.error_log is not None:
                self.error_log.append(key, response)
            if result_callback:
                result_callback(key, response.ok, response.render(key))

        success = report_is_successful(responses)
        logger.info(
            f"Deposit finished: {sum(1 for r in responses.values() if r.ok)} of {len(responses)} succeeded"
        )
        return success, render_report(responses)

    def _deposit_entity(self, entity: Exportable, depositor: Depositor) -> DepositResponse:
        key = object_key(entity)
        action = ACTION_REDEPOSIT if is_redeposit(entity) else ACTION_DEPOSIT
        type_label = entity.entity_type.value
        title = self.get_title(entity)

        export_file = None
        try:
            parent = self.get_parent(entity)
            xml = serialize_resource(self.mapper.map_to_xml(entity, parent))
            export_file = self.export_file_name(key)
            os.makedirs(os.path.dirname(export_file), exist_ok=True)
            with open(export_file, 'wb') as f:
                f.write(xml)
            result = depositor.deposit(entity, parent, export_file)
        except (MappingError, SerializationError) as e:
            logger.error(f"Could not export {key}: {e}")
            return DepositResponse(RESPONSE_STATUS_ERROR, str(e), title, action, type_label)
        except OSError as e:
            logger.error(f"Could not write export file for {key}: {e}")
            return DepositResponse(
                RESPONSE_STATUS_ERROR, f"Could not write export file: {str(e)}", title, action, type_label
            )
        except Exception as e:
            logger.exception(f"Unexpected error while depositing {key}")
            return DepositResponse(
                RESPONSE_STATUS_ERROR, f"Unexpected error ({type(e).__name__}): {str(e)}", title, action, type_label
            )
        finally:
            if export_file and os.path.exists(export_file):
                os.remove(export_file)

        if result.ok:
            return DepositResponse(RESPONSE_STATUS_SUCCESS, result.message, title, action, type_label)
        return DepositResponse(
            RESPONSE_STATUS_ERROR,
            "; ".join(detail for _, detail in result.errors),
            title,
            action,
            type_label,
            status_code=result.status_code,
        )

    #
    # Download
    #
    def export_as_download(
        self,
        entities: Sequence[Exportable],
        output_dir: Optional[str] = None
    ) -> ExportResult:
        """
        Write one DataCite XML file per entity, bundled into a .tar.gz if there is more than one.

        Args:
            entities: Publications, chapters and publication formats
            output_dir: Directory receiving the export (default: the export path)

        Returns:
            ExportResult with the path of the XML file or bundle and the
            (object key, message) pairs of entities that could not be exported
        """
        output_dir = output_dir or self.export_path
        os.makedirs(output_dir, exist_ok=True)

        exported: "OrderedDict[str, str]" = OrderedDict()
        errors: List[Tuple[str, str]] = []
        for entity in entities:
            key = object_key(entity)
            if key in exported:
                continue
            try:
                xml = serialize_resource(self.mapper.map_to_xml(entity, self.get_parent(entity)))
            except (MappingError, SerializationError) as e:
                logger.error(f"Could not export {key}: {e}")
                errors.append((key, str(e)))
                continue

            path = self.export_file_name(key, '.xml', output_dir)
            try:
                with open(path, 'wb') as f:
                    f.write(xml)
            except OSError as e:
                logger.error(f"Could not write export file {path}: {e}")
                errors.append((key, f"Could not write export file: {str(e)}"))
                continue
            exported[key] = path

        if not exported:
            return ExportResult(None, errors)

        files = list(exported.values())
        if len(files) == 1:
            return ExportResult(files[0], errors)

        # Bundle name: e.g. datacite-20160723-160036-book-3-1.tar.gz
        last_key = next(reversed(exported))
        bundle_path = self.export_file_name(last_key, '.tar.gz', output_dir)
        try:
            create_bundle(files, bundle_path)
        except PackagingError as e:
            errors.append(("bundle", str(e)))
            if os.path.exists(bundle_path):
                os.remove(bundle_path)
            return ExportResult(None, errors)
        finally:
            for path in files:
                if os.path.exists(path):
                    os.remove(path)

        return ExportResult(bundle_path, errors)

    #
    # Registration bookkeeping
    #
    def collect_submission_items(self, publications: Iterable[Publication]) -> List[Exportable]:
        """
        Expand publications into every exportable object that carries a DOI.

        A publication is followed by its chapters and then its publication
        formats. Only DOI types enabled for the press are included.
        """
        enabled = set(self.context.enabled_doi_types)
        items: List[Exportable] = []
        for publication in publications:
            self.cache.add(publication)
            if DOI_TYPE_PUBLICATION in enabled and publication.doi:
                items.append(publication)
            if DOI_TYPE_CHAPTER in enabled:
                items.extend(chapter for chapter in self.get_chapters(publication) if chapter.doi)
            if DOI_TYPE_REPRESENTATION in enabled:
                items.extend(pf for pf in self.get_publication_formats(publication) if pf.doi)
        return items

    def mark_registered(self, entities: Iterable[Exportable]) -> int:
        """
        Mark DOIs as registered outside of this export (no registration agency).

        Returns:
            Number of entities updated; entities without a DOI are skipped
        """
        count = 0
        for entity in entities:
            if entity.doi_object is None:
                logger.warning(f"Cannot mark {object_key(entity)} registered: no DOI")
                continue
            self.status_store.update_status(entity, DoiStatus.REGISTERED, None)
            count += 1
        return count

    @staticmethod
    def is_marked_registered(entity: Exportable) -> bool:
        """True for DOIs registered without a registration agency; those are never deposited."""
        record = entity.doi_object
        return (
            record is not None
            and record.status == DoiStatus.REGISTERED
            and record.registration_agency is None
        )

    #
    # Lookups
    #
    def get_parent(self, entity: Exportable) -> Optional[Publication]:
        """Return the parent publication of a chapter or format (None for publications)."""
        if isinstance(entity, Publication):
            return None
        publication_id = entity.publication_id
        if self.cache.is_cached(CACHE_PUBLICATION, publication_id):
            return self.cache.get(CACHE_PUBLICATION, publication_id)
        publication = self.repository.get_publication(publication_id)
        if publication is None:
            logger.warning(f"Publication {publication_id} of {object_key(entity)} not found")
            return None
        self.cache.add(publication)
        return publication

    def get_chapters(self, publication: Publication) -> List[Chapter]:
        return self._get_children(
            publication, CACHE_CHAPTERS_BY_PUBLICATION, self.repository.get_chapters_by_publication
        )

    def get_publication_formats(self, publication: Publication) -> List[PublicationFormat]:
        return self._get_children(
            publication, CACHE_FORMATS_BY_PUBLICATION, self.repository.get_formats_by_publication
        )

    def _get_children(self, publication: Publication, collection: str, lookup) -> list:
        if not self.cache.is_cached(collection, publication.id):
            for child in lookup(publication.id):
                self.cache.add(child, publication)
            self.cache.mark_complete(collection, publication.id)
        return list(self.cache.get(collection, publication.id).values())

    def get_title(self, entity: Exportable) -> str:
        """Plain-text title in the entity's preferred locale, used in reports."""
        if isinstance(entity, PublicationFormat):
            localized = entity.name
            locale = None
        else:
            localized = entity.title
            locale = entity.locale
        title = get_primary_translation(localized, resolve_precedence(self.context, locale))
        return html_to_text(title or "")

    def export_file_name(self, object_part: str, extension: str = '.xml', directory: Optional[str] = None) -> str:
        """
        Path of an export file, e.g. ``datacite-20160723-160036-book-3-1.xml``.
        """
        timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
        file_name = f"{EXPORT_FILE_PREFIX}-{timestamp}-{object_part}-{self.context.id}{extension}"
        return os.path.join(directory or self.export_path, file_name)
