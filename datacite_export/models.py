"""Domain objects exported to DataCite: publications, chapters and publication formats."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class DoiStatus(Enum):
    """Deposit status of a DOI."""

    NOT_DEPOSITED = "not-deposited"
    MARKED_REGISTERED = "marked-registered"
    REGISTERED = "registered"
    ERROR = "error"
    STALE = "stale"


class EntityType(Enum):
    """Report label for each exportable entity variant."""

    SUBMISSION = "Submission"
    CHAPTER = "Chapter"
    PUBLICATION_FORMAT = "PublicationFormat"


# DOI types a press can enable
DOI_TYPE_PUBLICATION = "publication"
DOI_TYPE_CHAPTER = "chapter"
DOI_TYPE_REPRESENTATION = "representation"


@dataclass
class DoiRecord:
    """A stored DOI together with its deposit bookkeeping."""

    doi: str
    status: DoiStatus = DoiStatus.NOT_DEPOSITED
    registration_agency: Optional[str] = None


@dataclass
class Author:
    """A contributor credited as creator."""

    given_name: Dict[str, str] = field(default_factory=dict)
    family_name: Dict[str, str] = field(default_factory=dict)
    affiliation: Dict[str, str] = field(default_factory=dict)
    orcid: Optional[str] = None
    ror_id: Optional[str] = None


@dataclass
class Chapter:
    """A chapter of a publication."""

    id: int
    source_chapter_id: int
    publication_id: int
    title: Dict[str, str] = field(default_factory=dict)
    subtitle: Dict[str, str] = field(default_factory=dict)
    abstract: Dict[str, str] = field(default_factory=dict)
    authors: List[Author] = field(default_factory=list)
    locale: Optional[str] = None
    license_url: Optional[str] = None
    date_published: Optional[str] = None
    doi_object: Optional[DoiRecord] = None

    @property
    def doi(self) -> Optional[str]:
        return self.doi_object.doi if self.doi_object else None

    @property
    def entity_type(self) -> EntityType:
        return EntityType.CHAPTER


@dataclass
class PublicationFormat:
    """A publication format (PDF, EPUB, print edition...) of a publication."""

    id: int
    publication_id: int
    name: Dict[str, str] = field(default_factory=dict)
    proof_file_id: Optional[int] = None
    doi_object: Optional[DoiRecord] = None

    @property
    def doi(self) -> Optional[str]:
        return self.doi_object.doi if self.doi_object else None

    @property
    def entity_type(self) -> EntityType:
        return EntityType.PUBLICATION_FORMAT


@dataclass
class Publication:
    """A published version of a monograph submission."""

    id: int
    submission_id: int
    locale: Optional[str] = None
    title: Dict[str, str] = field(default_factory=dict)
    prefix: Dict[str, str] = field(default_factory=dict)
    subtitle: Dict[str, str] = field(default_factory=dict)
    abstract: Dict[str, str] = field(default_factory=dict)
    keywords: Dict[str, List[str]] = field(default_factory=dict)
    subjects: Dict[str, List[str]] = field(default_factory=dict)
    authors: List[Author] = field(default_factory=list)
    license_url: Optional[str] = None
    date_published: Optional[str] = None
    date_submitted: Optional[str] = None
    doi_object: Optional[DoiRecord] = None
    chapters: List[Chapter] = field(default_factory=list)
    publication_formats: List[PublicationFormat] = field(default_factory=list)

    @property
    def doi(self) -> Optional[str]:
        return self.doi_object.doi if self.doi_object else None

    @property
    def entity_type(self) -> EntityType:
        return EntityType.SUBMISSION


Exportable = Union[Publication, Chapter, PublicationFormat]


@dataclass
class PressContext:
    """The press (context) an export runs for."""

    id: int
    path: str
    base_url: str
    publisher: str
    primary_locale: str
    supported_locales: List[str] = field(default_factory=list)
    name: str = ""
    license_url: Optional[str] = None
    enabled_doi_types: List[str] = field(
        default_factory=lambda: [DOI_TYPE_PUBLICATION, DOI_TYPE_CHAPTER, DOI_TYPE_REPRESENTATION]
    )

    def __post_init__(self):
        """Validate the mandatory primary locale."""
        if not self.primary_locale:
            raise ValueError("A press context needs a primary locale")


def object_key(entity: Exportable) -> str:
    """
    Human-readable identifier of an entity, also used in export file names.

    Examples:
        book-12, chapter-3, publicationFormat-7
    """
    if isinstance(entity, Publication):
        return f"book-{entity.submission_id}"
    if isinstance(entity, Chapter):
        return f"chapter-{entity.source_chapter_id}"
    if isinstance(entity, PublicationFormat):
        return f"publicationFormat-{entity.id}"
    raise TypeError(f"Unsupported entity type: {type(entity).__name__}")
