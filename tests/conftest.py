"""Shared fixtures: a press, its DataCite settings and a small catalog."""

import os
from dataclasses import replace

import pytest

from datacite_export.config import DataciteSettings
from datacite_export.models import (
    Author,
    Chapter,
    DoiRecord,
    PressContext,
    Publication,
    PublicationFormat,
)
from datacite_export.repositories import InMemoryCatalogRepository, InMemoryDoiStatusStore

# Run Qt headless so the worker tests do not need a display server.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture
def context():
    """Press with English as primary and German as additional locale."""
    return PressContext(
        id=1,
        path="press",
        base_url="https://press.example.org",
        publisher="Example Press",
        primary_locale="en",
        supported_locales=["en", "de"],
        name="Example Press",
    )


@pytest.fixture
def settings():
    """Production settings with a test account configured."""
    return DataciteSettings(
        username="TIB.PRESS",
        password="secret",
        test_username="TIB.TEST",
        test_password="test-secret",
        test_doi_prefix="10.9999",
    )


@pytest.fixture
def test_settings(settings):
    """Same settings with test mode enabled."""
    return replace(settings, test_mode=True)


@pytest.fixture
def author():
    return Author(
        given_name={"en": "Ada"},
        family_name={"en": "Lovelace"},
        affiliation={"en": "Example University"},
        orcid="https://orcid.org/0000-0001-2345-6789",
        ror_id="https://ror.org/012345678",
    )


@pytest.fixture
def chapter():
    return Chapter(
        id=10,
        source_chapter_id=5,
        publication_id=1,
        title={"en": "Sources"},
        abstract={"en": "What the rivers tell us."},
        authors=[Author(given_name={"en": "Grace"}, family_name={"en": "Hopper"})],
        date_published="2023-06-01",
        doi_object=DoiRecord("10.1234/book.3.c5"),
    )


@pytest.fixture
def publication_format():
    return PublicationFormat(
        id=7,
        publication_id=1,
        name={"en": "PDF"},
        proof_file_id=42,
        doi_object=DoiRecord("10.1234/book.3.f7"),
    )


@pytest.fixture
def publication(author, chapter, publication_format):
    """Monograph with one chapter and one publication format, all with DOIs."""
    return Publication(
        id=1,
        submission_id=3,
        locale="en",
        title={"en": "Rivers of the North", "de": "Flüsse des Nordens"},
        prefix={"en": "The"},
        subtitle={"en": "A History"},
        abstract={"en": "<p>A <em>short</em> history.</p>"},
        keywords={"en": ["rivers", "history"]},
        subjects={"en": ["Geography"]},
        authors=[author],
        license_url="https://creativecommons.org/licenses/by/4.0/",
        date_published="2023-05-01",
        date_submitted="2022-11-20",
        doi_object=DoiRecord("10.1234/book.3"),
        chapters=[chapter],
        publication_formats=[publication_format],
    )


@pytest.fixture
def repository(publication):
    return InMemoryCatalogRepository([publication])


@pytest.fixture
def status_store():
    return InMemoryDoiStatusStore()
