"""Tests for mapping publications, chapters and formats to DataCite XML."""

import pytest
from lxml import etree as ET

from datacite_export.mapping import (
    DataciteXmlMapper,
    MappingError,
    Node,
    SerializationError,
    create_test_doi,
    serialize_resource,
)
from datacite_export.mapping.node import DATACITE_XMLNS, XMLNS_XSI, create_root_node
from datacite_export.models import Author, Chapter, DoiRecord, Publication

NS = {"d": DATACITE_XMLNS}
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"


def local_names(element):
    return [ET.QName(child).localname for child in element]


@pytest.fixture
def mapper(context, settings):
    return DataciteXmlMapper(context, settings)


@pytest.fixture
def test_mapper(context, test_settings):
    return DataciteXmlMapper(context, test_settings)


def to_tree(node):
    """Serialize and re-parse, so assertions run against the real document."""
    return ET.fromstring(serialize_resource(node))


class TestPublicationMapping:
    """Test the resource produced for a monograph."""

    def test_root_element(self, mapper, publication):
        """Test root element, namespace and schema location."""
        root = to_tree(mapper.map_to_xml(publication))

        assert root.tag == f"{{{DATACITE_XMLNS}}}resource"
        schema_location = root.get(f"{{{XMLNS_XSI}}}schemaLocation")
        assert schema_location.startswith(DATACITE_XMLNS + " ")
        assert "kernel-4" in schema_location

    def test_element_order(self, mapper, publication):
        """Test that elements follow the DataCite kernel order."""
        root = to_tree(mapper.map_to_xml(publication))

        assert local_names(root) == [
            "identifier",
            "creators",
            "titles",
            "publisher",
            "publicationYear",
            "subjects",
            "language",
            "resourceType",
            "relatedIdentifiers",
            "rightsList",
            "descriptions",
        ]

    def test_mandatory_fields(self, mapper, publication):
        """Test identifier, creator and publication year."""
        root = to_tree(mapper.map_to_xml(publication))

        identifiers = root.findall("d:identifier", NS)
        assert len(identifiers) == 1
        assert identifiers[0].get("identifierType") == "DOI"
        assert identifiers[0].text == "10.1234/book.3"
        assert len(root.findall("d:creators/d:creator", NS)) >= 1
        assert root.findtext("d:publicationYear", namespaces=NS) == "2023"
        assert root.findtext("d:publisher", namespaces=NS) == "Example Press"

    def test_creator(self, mapper, publication):
        """Test creator name, ORCID and ROR affiliation."""
        root = to_tree(mapper.map_to_xml(publication))
        creator = root.find("d:creators/d:creator", NS)

        name = creator.find("d:creatorName", NS)
        assert name.text == "Lovelace, Ada"
        assert name.get("nameType") == "Personal"

        name_identifier = creator.find("d:nameIdentifier", NS)
        assert name_identifier.text == "https://orcid.org/0000-0001-2345-6789"
        assert name_identifier.get("nameIdentifierScheme") == "ORCID"

        affiliation = creator.find("d:affiliation", NS)
        assert affiliation.text == "Example University"
        assert affiliation.get("affiliationIdentifier") == "https://ror.org/012345678"
        assert affiliation.get("affiliationIdentifierScheme") == "ROR"

    def test_titles_with_translation(self, mapper, publication):
        """Test full title in the publication locale followed by translated titles."""
        root = to_tree(mapper.map_to_xml(publication))
        titles = root.findall("d:titles/d:title", NS)

        assert len(titles) == 2
        assert titles[0].text == "The Rivers of the North: A History"
        assert titles[0].get(XML_LANG) == "en"
        assert titles[0].get("titleType") is None
        assert titles[1].text == "Flüsse des Nordens"
        assert titles[1].get(XML_LANG) == "de"
        assert titles[1].get("titleType") == "TranslatedTitle"

    def test_subjects_language_and_type(self, mapper, publication):
        """Test subjects, language and resource type."""
        root = to_tree(mapper.map_to_xml(publication))

        subjects = [s.text for s in root.findall("d:subjects/d:subject", NS)]
        assert subjects == ["rivers", "history", "Geography"]
        assert root.findtext("d:language", namespaces=NS) == "en"
        resource_type = root.find("d:resourceType", NS)
        assert resource_type.text == "Monograph"
        assert resource_type.get("resourceTypeGeneral") == "Book"

    def test_has_part_related_identifiers(self, mapper, publication):
        """Test that chapters and formats with DOIs are listed as parts."""
        root = to_tree(mapper.map_to_xml(publication))
        related = root.findall("d:relatedIdentifiers/d:relatedIdentifier", NS)

        assert [r.text for r in related] == ["10.1234/book.3.c5", "10.1234/book.3.f7"]
        assert {r.get("relationType") for r in related} == {"HasPart"}
        assert {r.get("relatedIdentifierType") for r in related} == {"DOI"}

    def test_rights_and_description(self, mapper, publication):
        """Test license statement and plain-text abstract."""
        root = to_tree(mapper.map_to_xml(publication))

        rights = root.find("d:rightsList/d:rights", NS)
        assert rights.get("rightsURI") == "https://creativecommons.org/licenses/by/4.0/"
        assert rights.text == (
            "This work is licensed under a Creative Commons Attribution 4.0 International License."
        )
        description = root.find("d:descriptions/d:description", NS)
        assert description.text == "A short history."
        assert description.get("descriptionType") == "Abstract"

    def test_year_falls_back_to_submission_date(self, mapper, publication):
        """Test publication year taken from the submission date."""
        publication.date_published = None

        root = to_tree(mapper.map_to_xml(publication))

        assert root.findtext("d:publicationYear", namespaces=NS) == "2022"

    def test_optional_elements_omitted(self, mapper, author):
        """Test that empty optional sections are left out entirely."""
        publication = Publication(
            id=2,
            submission_id=4,
            title={"en": "Plain"},
            authors=[author],
            date_published="2021-01-01",
            doi_object=DoiRecord("10.1234/book.4"),
        )

        root = to_tree(mapper.map_to_xml(publication))

        assert local_names(root) == [
            "identifier", "creators", "titles", "publisher",
            "publicationYear", "language", "resourceType",
        ]

    def test_test_mode_rewrites_all_dois(self, test_mapper, publication):
        """Test that the test prefix is applied to identifier and related DOIs."""
        root = to_tree(test_mapper.map_to_xml(publication))

        assert root.findtext("d:identifier", namespaces=NS) == "10.9999/book.3"
        related = [r.text for r in root.findall("d:relatedIdentifiers/d:relatedIdentifier", NS)]
        assert related == ["10.9999/book.3.c5", "10.9999/book.3.f7"]


class TestChapterMapping:
    """Test the resource produced for a chapter."""

    def test_chapter_resource(self, mapper, publication, chapter):
        """Test chapter creators, titles, year and type."""
        root = to_tree(mapper.map_to_xml(chapter, publication))

        assert root.findtext("d:identifier", namespaces=NS) == "10.1234/book.3.c5"
        assert root.findtext("d:creators/d:creator/d:creatorName", namespaces=NS) == "Hopper, Grace"
        assert [t.text for t in root.findall("d:titles/d:title", NS)] == ["Sources"]
        assert root.findtext("d:publicationYear", namespaces=NS) == "2023"
        assert root.find("d:resourceType", NS).get("resourceTypeGeneral") == "BookChapter"
        assert root.findtext("d:descriptions/d:description", namespaces=NS) == "What the rivers tell us."

    def test_chapter_is_part_of_publication(self, mapper, publication, chapter):
        """Test IsPartOf relation to the publication DOI."""
        root = to_tree(mapper.map_to_xml(chapter, publication))
        related = root.findall("d:relatedIdentifiers/d:relatedIdentifier", NS)

        assert len(related) == 1
        assert related[0].text == "10.1234/book.3"
        assert related[0].get("relationType") == "IsPartOf"

    def test_chapter_related_item(self, mapper, publication, chapter):
        """Test that the book is listed as related item after the descriptions."""
        root = to_tree(mapper.map_to_xml(chapter, publication))

        assert local_names(root)[-2:] == ["descriptions", "relatedItems"]
        item = root.find("d:relatedItems/d:relatedItem", NS)
        assert item.get("relationType") == "IsPublishedIn"
        identifier = item.find("d:relatedItemIdentifier", NS)
        assert identifier.text == "https://press.example.org/index.php/press/catalog/book/3"
        assert identifier.get("relatedItemIdentifierType") == "URL"
        assert item.findtext("d:titles/d:title", namespaces=NS) == "The Rivers of the North: A History"

    def test_no_related_identifiers_without_parent_doi(self, mapper, publication, chapter):
        """Test that relatedIdentifiers is omitted when the parent has no DOI."""
        publication.doi_object = None

        root = to_tree(mapper.map_to_xml(chapter, publication))

        assert root.find("d:relatedIdentifiers", NS) is None

    def test_creators_fall_back_to_publication(self, mapper, publication, chapter):
        """Test chapter without authors credited with the publication authors."""
        chapter.authors = []

        root = to_tree(mapper.map_to_xml(chapter, publication))

        assert root.findtext("d:creators/d:creator/d:creatorName", namespaces=NS) == "Lovelace, Ada"

    def test_rights_fall_back_to_publication(self, mapper, publication, chapter):
        """Test chapter license inherited from the publication."""
        root = to_tree(mapper.map_to_xml(chapter, publication))

        rights = root.find("d:rightsList/d:rights", NS)
        assert rights.get("rightsURI") == "https://creativecommons.org/licenses/by/4.0/"

    def test_chapter_without_parent(self, mapper, chapter):
        """Test that a chapter cannot be mapped without its publication."""
        with pytest.raises(MappingError):
            mapper.map_to_xml(chapter)


class TestPublicationFormatMapping:
    """Test the resource produced for a publication format."""

    def test_format_resource(self, mapper, publication, publication_format):
        """Test format title, type and relation to the publication."""
        root = to_tree(mapper.map_to_xml(publication_format, publication))

        assert root.findtext("d:identifier", namespaces=NS) == "10.1234/book.3.f7"
        assert root.findtext("d:titles/d:title", namespaces=NS) == "The Rivers of the North: A History - PDF"
        resource_type = root.find("d:resourceType", NS)
        assert resource_type.text == "Publication Format"
        assert resource_type.get("resourceTypeGeneral") == "Book"
        assert root.find("d:relatedIdentifiers/d:relatedIdentifier", NS).get("relationType") == "IsPartOf"
        assert root.findtext("d:creators/d:creator/d:creatorName", namespaces=NS) == "Lovelace, Ada"


class TestMappingErrors:
    """Test failures for unresolvable mandatory fields."""

    def test_missing_doi(self, mapper, publication):
        publication.doi_object = None
        with pytest.raises(MappingError, match="no DOI"):
            mapper.map_to_xml(publication)

    def test_missing_creators(self, mapper, publication):
        publication.authors = [Author()]
        with pytest.raises(MappingError, match="no creators"):
            mapper.map_to_xml(publication)

    def test_missing_title(self, mapper, publication):
        publication.title = {}
        with pytest.raises(MappingError, match="no title"):
            mapper.map_to_xml(publication)

    def test_missing_year(self, mapper, publication):
        publication.date_published = None
        publication.date_submitted = None
        with pytest.raises(MappingError, match="no publication year"):
            mapper.map_to_xml(publication)

    def test_chapter_title_required(self, mapper, publication):
        chapter = Chapter(id=11, source_chapter_id=6, publication_id=1,
                          doi_object=DoiRecord("10.1234/book.3.c6"))
        with pytest.raises(MappingError, match="no title"):
            mapper.map_to_xml(chapter, publication)


class TestCreateTestDoi:
    """Test test-mode DOI conversion."""

    def test_prefix_replaced(self):
        assert create_test_doi("10.1234/5678", "10.9999") == "10.9999/5678"

    def test_only_first_slash_splits(self):
        assert create_test_doi("10.1234/a/b", "10.9999") == "10.9999/a/b"

    def test_idempotent(self):
        doi = create_test_doi("10.1234/5678", "10.9999")
        assert create_test_doi(doi, "10.9999") == doi


class TestSerialization:
    """Test writing node trees that cannot be represented as XML."""

    def test_control_character_in_text(self):
        root = create_root_node()
        root.append(Node("subject", "a\x01b"))

        with pytest.raises(SerializationError, match="<subject>"):
            serialize_resource(root)

    def test_control_character_in_attribute(self):
        root = create_root_node()
        root.append(Node("title", "Rivers", {"xml:lang": "en\x02"}))

        with pytest.raises(SerializationError, match="<title>"):
            serialize_resource(root)
