"""Tests for the in-memory catalog and DOI status store."""

import pytest

from datacite_export.models import DoiStatus


class TestInMemoryCatalogRepository:
    """Test lookups by id."""

    def test_lookups(self, repository, publication, chapter, publication_format):
        assert repository.get_publication(1) is publication
        assert repository.get_chapter(10) is chapter
        assert repository.get_publication_format(7) is publication_format
        assert repository.get_publication(99) is None

    def test_children_by_publication(self, repository, chapter, publication_format):
        assert repository.get_chapters_by_publication(1) == [chapter]
        assert repository.get_formats_by_publication(1) == [publication_format]
        assert repository.get_chapters_by_publication(99) == []


class TestInMemoryDoiStatusStore:
    """Test status updates."""

    def test_registered_with_agency(self, status_store, publication):
        status_store.update_status(publication, DoiStatus.REGISTERED, "DataciteExportPlugin")

        assert publication.doi_object.status == DoiStatus.REGISTERED
        assert publication.doi_object.registration_agency == "DataciteExportPlugin"
        assert status_store.history == [("book-3", DoiStatus.REGISTERED, "DataciteExportPlugin")]

    def test_error_keeps_agency(self, status_store, chapter):
        chapter.doi_object.registration_agency = "DataciteExportPlugin"

        status_store.update_status(chapter, DoiStatus.ERROR)

        assert chapter.doi_object.status == DoiStatus.ERROR
        assert chapter.doi_object.registration_agency == "DataciteExportPlugin"

    def test_without_doi(self, status_store, publication_format):
        publication_format.doi_object = None

        with pytest.raises(ValueError):
            status_store.update_status(publication_format, DoiStatus.ERROR)
