"""Map publications, chapters and publication formats to DataCite kernel-4 resources."""

import logging
import re
from collections import OrderedDict
from typing import Dict, List, Optional

from datacite_export.config import DataciteSettings
from datacite_export.mapping.locales import (
    get_primary_translation,
    get_translations_by_precedence,
    iso1_from_locale,
    resolve_precedence,
    to_xml_lang,
)
from datacite_export.mapping.node import Node, create_root_node
from datacite_export.models import (
    Author,
    Chapter,
    Exportable,
    PressContext,
    Publication,
    PublicationFormat,
)
from datacite_export.utils.license_parser import license_badge_text
from datacite_export.utils.text_utils import html_to_text
from datacite_export.utils.url_builder import LandingPageUrlBuilder

logger = logging.getLogger(__name__)

# Title types
DATACITE_TITLETYPE_TRANSLATED = "TranslatedTitle"

# Identifier types
DATACITE_IDTYPE_DOI = "DOI"
DATACITE_IDTYPE_URL = "URL"

# Relation types
DATACITE_RELTYPE_HASPART = "HasPart"
DATACITE_RELTYPE_ISPARTOF = "IsPartOf"
DATACITE_RELTYPE_ISPUBLISHEDIN = "IsPublishedIn"

# Description types
DATACITE_DESCTYPE_ABSTRACT = "Abstract"

ORCID_SCHEME_URI = "http://orcid.org/"
ROR_SCHEME_URI = "https://ror.org"

# (resourceType text, resourceTypeGeneral) per entity class
RESOURCE_TYPES = {
    Publication: ("Monograph", "Book"),
    Chapter: ("Chapter", "BookChapter"),
    PublicationFormat: ("Publication Format", "Book"),
}
DEFAULT_RESOURCE_TYPE = ("Text", "Text")

_YEAR_PATTERN = re.compile(r"^\d{4}")


class MappingError(Exception):
    """Raised when a mandatory DataCite field cannot be resolved."""
    pass


def create_test_doi(doi: str, test_prefix: str) -> str:
    """
    Replace the prefix of a DOI (everything before the first slash).

    Examples:
        >>> create_test_doi("10.1234/5678", "10.9999")
        '10.9999/5678'
    """
    _, sep, suffix = doi.partition("/")
    if not sep:
        return doi
    return f"{test_prefix}/{suffix}"


class DataciteXmlMapper:
    """
    Convert an exportable entity into a DataCite resource node tree.

    A fresh tree is built for every call; the mapper keeps no per-entity state.
    """

    def __init__(
        self,
        context: PressContext,
        settings: DataciteSettings,
        url_builder: Optional[LandingPageUrlBuilder] = None
    ):
        """
        Initialize the mapper.

        Args:
            context: Press the exported entities belong to
            settings: DataCite settings (test mode and test DOI prefix are used)
            url_builder: Builds the landing page URL used in related items
        """
        self.context = context
        self.settings = settings
        self.url_builder = url_builder or LandingPageUrlBuilder(context, settings.test_mode)

    def map_to_xml(self, entity: Exportable, parent: Optional[Publication] = None) -> Node:
        """
        Build the DataCite resource for an entity.

        Args:
            entity: Publication, Chapter or PublicationFormat
            parent: Parent publication; required for chapters and formats

        Returns:
            Root ``resource`` node

        Raises:
            MappingError: If DOI, titles, creators, publisher or publication year
                cannot be resolved, or a chapter/format comes without its parent
        """
        if isinstance(entity, Publication):
            publication = entity
            chapter = None
            locale = entity.locale
        elif isinstance(entity, (Chapter, PublicationFormat)):
            if parent is None:
                raise MappingError(
                    f"{entity.entity_type.value} {entity.id} cannot be exported without its publication"
                )
            publication = parent
            chapter = entity if isinstance(entity, Chapter) else None
            locale = (chapter.locale if chapter else None) or parent.locale
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

        precedence = resolve_precedence(self.context, locale)

        doi = entity.doi
        if not doi:
            raise MappingError(f"{entity.entity_type.value} {entity.id} has no DOI")

        publisher = self.context.publisher
        if not publisher:
            raise MappingError(f"No publisher configured for press '{self.context.path}'")

        root = create_root_node()
        # DOI (mandatory)
        root.append(Node("identifier", self._emit_doi(doi), {"identifierType": DATACITE_IDTYPE_DOI}))
        # Creators (mandatory)
        root.append(self._create_creators_node(entity, publication, precedence))
        # Titles (mandatory)
        root.append(self._create_titles_node(entity, publication, precedence))
        # Publisher (mandatory)
        root.append(Node("publisher", publisher))
        # Publication year (mandatory)
        root.append(Node("publicationYear", self._get_publication_year(entity, publication)))
        # Subjects
        subjects_node = self._create_subjects_node(publication, precedence)
        if subjects_node is not None:
            root.append(subjects_node)
        # Language
        root.append(Node("language", iso1_from_locale(precedence[0])))
        # Resource type
        root.append(self._create_resource_type_node(entity))
        # Related identifiers
        related_identifiers_node = self._create_related_identifiers_node(entity, publication)
        if related_identifiers_node is not None:
            root.append(related_identifiers_node)
        # Rights
        rights_node = self._create_rights_node(publication, chapter)
        if rights_node is not None:
            root.append(rights_node)
        # Descriptions
        descriptions_node = self._create_descriptions_node(publication, chapter, precedence)
        if descriptions_node is not None:
            root.append(descriptions_node)
        # Related items
        if chapter is not None:
            root.append(self._create_related_items_node(publication, precedence))

        logger.debug(f"Mapped {entity.entity_type.value} {entity.id} to DataCite resource ({doi})")
        return root

    #
    # Conversion helpers
    #
    def _emit_doi(self, doi: str) -> str:
        # Test deposits go to a sandbox namespace, related DOIs included
        if self.settings.test_mode:
            if not self.settings.test_doi_prefix:
                raise MappingError("Test mode is enabled but no test DOI prefix is configured")
            return create_test_doi(doi, self.settings.test_doi_prefix)
        return doi

    def _create_creators_node(
        self,
        entity: Exportable,
        publication: Publication,
        precedence: List[str]
    ) -> Node:
        authors: List[Author] = []
        if isinstance(entity, Chapter):
            authors = list(entity.authors)
        if not authors:
            authors = list(publication.authors)

        creators_node = Node("creators")
        for author in authors:
            creator_node = self._create_creator_node(author, precedence)
            if creator_node is not None:
                creators_node.append(creator_node)

        if not creators_node.children:
            raise MappingError(f"{entity.entity_type.value} {entity.id} has no creators")
        return creators_node

    def _create_creator_node(self, author: Author, precedence: List[str]) -> Optional[Node]:
        given = (get_primary_translation(author.given_name, precedence) or "").strip()
        family = (get_primary_translation(author.family_name, precedence) or "").strip()
        if not given and not family:
            logger.debug("Skipping author without given and family name")
            return None
        name = f"{family}, {given}" if family and given else (family or given)

        creator_node = Node("creator")
        creator_node.append(Node("creatorName", name, {"nameType": "Personal"}))
        if author.orcid:
            creator_node.append(Node(
                "nameIdentifier",
                author.orcid,
                {"schemeURI": ORCID_SCHEME_URI, "nameIdentifierScheme": "ORCID"},
            ))
        affiliation = get_primary_translation(author.affiliation, precedence)
        if affiliation:
            attributes: Dict[str, str] = {}
            if author.ror_id:
                attributes = {
                    "affiliationIdentifier": author.ror_id,
                    "affiliationIdentifierScheme": "ROR",
                    "schemeURI": ROR_SCHEME_URI,
                }
            creator_node.append(Node("affiliation", affiliation, attributes))
        return creator_node

    @staticmethod
    def _full_titles(publication: Publication) -> Dict[str, str]:
        titles = {}
        for locale, title in publication.title.items():
            if not title:
                continue
            prefix = publication.prefix.get(locale)
            full_title = f"{prefix} {title}" if prefix else title
            subtitle = publication.subtitle.get(locale)
            if subtitle:
                full_title = f"{full_title}: {subtitle}"
            titles[locale] = full_title
        return titles

    @staticmethod
    def _chapter_titles(chapter: Chapter) -> Dict[str, str]:
        titles = {}
        for locale, title in chapter.title.items():
            if not title:
                continue
            subtitle = chapter.subtitle.get(locale)
            titles[locale] = f"{title}: {subtitle}" if subtitle else title
        return titles

    def _titles_for(
        self,
        entity: Exportable,
        publication: Publication,
        precedence: List[str]
    ) -> "OrderedDict[str, str]":
        """Localized plain-text titles ordered by precedence."""
        if isinstance(entity, Chapter):
            titles = get_translations_by_precedence(self._chapter_titles(entity), precedence)
        else:
            titles = get_translations_by_precedence(self._full_titles(publication), precedence)
            if isinstance(entity, PublicationFormat):
                names = get_translations_by_precedence(entity.name, precedence)
                primary_name = next(iter(names.values()), None)
                if primary_name:
                    titles = OrderedDict(
                        (locale, f"{title} - {names.get(locale) or primary_name}")
                        for locale, title in titles.items()
                    )

        plain = OrderedDict()
        for locale, title in titles.items():
            text = html_to_text(title)
            if text:
                plain[locale] = text
        return plain

    def _build_titles_node(self, titles: "OrderedDict[str, str]") -> Node:
        titles_node = Node("titles")
        for index, (locale, title) in enumerate(titles.items()):
            attributes = {"xml:lang": to_xml_lang(locale)}
            if index > 0:
                attributes["titleType"] = DATACITE_TITLETYPE_TRANSLATED
            titles_node.append(Node("title", title, attributes))
        return titles_node

    def _create_titles_node(
        self,
        entity: Exportable,
        publication: Publication,
        precedence: List[str]
    ) -> Node:
        titles = self._titles_for(entity, publication, precedence)
        if not titles:
            raise MappingError(f"{entity.entity_type.value} {entity.id} has no title")
        return self._build_titles_node(titles)

    def _get_publication_year(self, entity: Exportable, publication: Publication) -> str:
        candidates = []
        if isinstance(entity, Chapter):
            candidates.append(entity.date_published)
        candidates.extend([publication.date_published, publication.date_submitted])

        for date_value in candidates:
            if date_value and _YEAR_PATTERN.match(str(date_value)):
                return str(date_value)[:4]
        raise MappingError(f"{entity.entity_type.value} {entity.id} has no publication year")

    def _create_subjects_node(self, publication: Publication, precedence: List[str]) -> Optional[Node]:
        subjects = list(get_primary_translation(publication.keywords, precedence) or [])
        subjects += list(get_primary_translation(publication.subjects, precedence) or [])
        subjects = [subject.strip() for subject in subjects if subject and subject.strip()]
        if not subjects:
            return None
        subjects_node = Node("subjects")
        for subject in subjects:
            subjects_node.append(Node("subject", subject))
        return subjects_node

    def _create_resource_type_node(self, entity: Exportable) -> Node:
        resource_type, resource_type_general = RESOURCE_TYPES.get(type(entity), DEFAULT_RESOURCE_TYPE)
        return Node("resourceType", resource_type, {"resourceTypeGeneral": resource_type_general})

    def _related_identifier(self, doi: str, relation_type: str) -> Node:
        return Node(
            "relatedIdentifier",
            self._emit_doi(doi),
            {"relatedIdentifierType": DATACITE_IDTYPE_DOI, "relationType": relation_type},
        )

    def _create_related_identifiers_node(
        self,
        entity: Exportable,
        publication: Publication
    ) -> Optional[Node]:
        node = Node("relatedIdentifiers")
        if isinstance(entity, (Chapter, PublicationFormat)):
            if publication.doi:
                node.append(self._related_identifier(publication.doi, DATACITE_RELTYPE_ISPARTOF))
        else:
            for chapter in publication.chapters:
                if chapter.doi:
                    node.append(self._related_identifier(chapter.doi, DATACITE_RELTYPE_HASPART))
            for publication_format in publication.publication_formats:
                if publication_format.doi:
                    node.append(self._related_identifier(publication_format.doi, DATACITE_RELTYPE_HASPART))
        return node if node.children else None

    def _create_rights_node(self, publication: Publication, chapter: Optional[Chapter]) -> Optional[Node]:
        rights_url = (
            (chapter.license_url if chapter else None)
            or publication.license_url
            or self.context.license_url
        )
        if not rights_url:
            return None
        rights_list_node = Node("rightsList")
        rights_list_node.append(Node("rights", license_badge_text(rights_url), {"rightsURI": rights_url}))
        return rights_list_node

    def _create_descriptions_node(
        self,
        publication: Publication,
        chapter: Optional[Chapter],
        precedence: List[str]
    ) -> Optional[Node]:
        abstracts = chapter.abstract if chapter else publication.abstract
        description = html_to_text(get_primary_translation(abstracts, precedence) or "")
        if not description:
            return None
        descriptions_node = Node("descriptions")
        descriptions_node.append(Node(
            "description", description, {"descriptionType": DATACITE_DESCTYPE_ABSTRACT}
        ))
        return descriptions_node

    def _create_related_items_node(self, publication: Publication, precedence: List[str]) -> Node:
        related_item_node = Node(
            "relatedItem",
            attributes={"relationType": DATACITE_RELTYPE_ISPUBLISHEDIN, "relatedItemType": "Book"},
        )
        related_item_node.append(Node(
            "relatedItemIdentifier",
            self.url_builder.get_url(publication),
            {"relatedItemIdentifierType": DATACITE_IDTYPE_URL},
        ))
        titles = self._titles_for(publication, publication, precedence)
        if titles:
            related_item_node.append(self._build_titles_node(titles))

        related_items_node = Node("relatedItems")
        related_items_node.append(related_item_node)
        return related_items_node
