"""Catalog lookups and DOI status persistence used by the export workflow."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from datacite_export.models import (
    Chapter,
    DoiStatus,
    Exportable,
    Publication,
    PublicationFormat,
    object_key,
)

logger = logging.getLogger(__name__)


class CatalogRepository(ABC):
    """Read access to publications, chapters and publication formats."""

    @abstractmethod
    def get_publication(self, publication_id: int) -> Optional[Publication]:
        ...

    @abstractmethod
    def get_chapter(self, chapter_id: int) -> Optional[Chapter]:
        ...

    @abstractmethod
    def get_publication_format(self, format_id: int) -> Optional[PublicationFormat]:
        ...

    def get_chapters_by_publication(self, publication_id: int) -> List[Chapter]:
        publication = self.get_publication(publication_id)
        return list(publication.chapters) if publication else []

    def get_formats_by_publication(self, publication_id: int) -> List[PublicationFormat]:
        publication = self.get_publication(publication_id)
        return list(publication.publication_formats) if publication else []


class DoiStatusStore(ABC):
    """Persistence of DOI deposit status."""

    @abstractmethod
    def update_status(
        self,
        entity: Exportable,
        status: DoiStatus,
        registration_agency: Optional[str] = None
    ) -> None:
        """Store a new status (and, for registered DOIs, the registering agency)."""
        ...


class InMemoryCatalogRepository(CatalogRepository):
    """Catalog held in memory, indexed from a list of publications."""

    def __init__(self, publications: Iterable[Publication] = ()):
        self._publications: Dict[int, Publication] = {}
        self._chapters: Dict[int, Chapter] = {}
        self._formats: Dict[int, PublicationFormat] = {}
        for publication in publications:
            self.add_publication(publication)

    def add_publication(self, publication: Publication) -> None:
        """Index a publication together with its chapters and formats."""
        self._publications[publication.id] = publication
        for chapter in publication.chapters:
            self._chapters[chapter.id] = chapter
        for publication_format in publication.publication_formats:
            self._formats[publication_format.id] = publication_format

    def get_publication(self, publication_id: int) -> Optional[Publication]:
        return self._publications.get(publication_id)

    def get_chapter(self, chapter_id: int) -> Optional[Chapter]:
        return self._chapters.get(chapter_id)

    def get_publication_format(self, format_id: int) -> Optional[PublicationFormat]:
        return self._formats.get(format_id)


class InMemoryDoiStatusStore(DoiStatusStore):
    """
    Status store that updates the entity's DOI record in place.

    Every update is also kept in ``history`` as (object key, status, agency).
    """

    def __init__(self):
        self.history: List[Tuple[str, DoiStatus, Optional[str]]] = []

    def update_status(
        self,
        entity: Exportable,
        status: DoiStatus,
        registration_agency: Optional[str] = None
    ) -> None:
        if entity.doi_object is None:
            raise ValueError(f"{object_key(entity)} has no DOI record to update")
        entity.doi_object.status = status
        if status == DoiStatus.REGISTERED:
            entity.doi_object.registration_agency = registration_agency
        self.history.append((object_key(entity), status, registration_agency))
        logger.info(f"DOI status of {object_key(entity)} set to {status.value}")
