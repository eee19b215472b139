"""Loader for JSON catalog files describing a press and its publications."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from datacite_export.models import (
    Author,
    Chapter,
    DoiRecord,
    DoiStatus,
    PressContext,
    Publication,
    PublicationFormat,
)
from datacite_export.repositories import InMemoryCatalogRepository

logger = logging.getLogger(__name__)


class CatalogLoadError(Exception):
    """Raised when a catalog file cannot be read or has an invalid structure."""
    pass


def _localized(value: Any, default_locale: Optional[str]) -> Dict[str, Any]:
    # Plain strings are accepted as values in the default locale
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if default_locale is None:
        raise CatalogLoadError(f"Localized value {value!r} needs a locale")
    return {default_locale: value}


def _doi_record(data: Dict[str, Any]) -> Optional[DoiRecord]:
    doi = data.get("doi")
    if not doi:
        return None
    if isinstance(doi, str):
        return DoiRecord(doi=doi)
    try:
        return DoiRecord(
            doi=doi["doi"],
            status=DoiStatus(doi.get("status", DoiStatus.NOT_DEPOSITED.value)),
            registration_agency=doi.get("registration_agency"),
        )
    except KeyError as e:
        raise CatalogLoadError(f"DOI entry without {e}")
    except ValueError as e:
        raise CatalogLoadError(f"Invalid DOI status: {e}")


def _author(data: Dict[str, Any], locale: Optional[str]) -> Author:
    return Author(
        given_name=_localized(data.get("given_name"), locale),
        family_name=_localized(data.get("family_name"), locale),
        affiliation=_localized(data.get("affiliation"), locale),
        orcid=data.get("orcid"),
        ror_id=data.get("ror_id"),
    )


def _chapter(data: Dict[str, Any], publication_id: int, locale: Optional[str]) -> Chapter:
    chapter_locale = data.get("locale") or locale
    return Chapter(
        id=data["id"],
        source_chapter_id=data.get("source_chapter_id", data["id"]),
        publication_id=publication_id,
        title=_localized(data.get("title"), chapter_locale),
        subtitle=_localized(data.get("subtitle"), chapter_locale),
        abstract=_localized(data.get("abstract"), chapter_locale),
        authors=[_author(author, chapter_locale) for author in data.get("authors", [])],
        locale=data.get("locale"),
        license_url=data.get("license_url"),
        date_published=data.get("date_published"),
        doi_object=_doi_record(data),
    )


def _publication_format(data: Dict[str, Any], publication_id: int, locale: Optional[str]) -> PublicationFormat:
    return PublicationFormat(
        id=data["id"],
        publication_id=publication_id,
        name=_localized(data.get("name"), locale),
        proof_file_id=data.get("proof_file_id"),
        doi_object=_doi_record(data),
    )


def _publication(data: Dict[str, Any], context: PressContext) -> Publication:
    locale = data.get("locale") or context.primary_locale
    publication_id = data["id"]
    return Publication(
        id=publication_id,
        submission_id=data.get("submission_id", publication_id),
        locale=data.get("locale"),
        title=_localized(data.get("title"), locale),
        prefix=_localized(data.get("prefix"), locale),
        subtitle=_localized(data.get("subtitle"), locale),
        abstract=_localized(data.get("abstract"), locale),
        keywords=_localized(data.get("keywords"), locale),
        subjects=_localized(data.get("subjects"), locale),
        authors=[_author(author, locale) for author in data.get("authors", [])],
        license_url=data.get("license_url"),
        date_published=data.get("date_published"),
        date_submitted=data.get("date_submitted"),
        doi_object=_doi_record(data),
        chapters=[_chapter(chapter, publication_id, locale) for chapter in data.get("chapters", [])],
        publication_formats=[
            _publication_format(pf, publication_id, locale)
            for pf in data.get("publication_formats", [])
        ],
    )


def load_catalog(filepath: str) -> Tuple[PressContext, InMemoryCatalogRepository]:
    """
    Load a press and its publications from a JSON catalog file.

    Expected structure::

        {
          "context": {"id": 1, "path": "press", "base_url": "https://press.example.org",
                      "publisher": "Example Press", "primary_locale": "en"},
          "publications": [{"id": 1, "submission_id": 3, "title": {"en": "..."},
                            "doi": "10.1234/book.3", "chapters": [...],
                            "publication_formats": [...]}]
        }

    Localized fields accept either a locale dict or a plain string (taken as
    the publication locale). ``doi`` is a DOI string or an object with
    ``doi``, ``status`` and ``registration_agency``.

    Args:
        filepath: Path to the JSON file

    Returns:
        Tuple of (press context, catalog repository)

    Raises:
        CatalogLoadError: If the file cannot be read or has an invalid structure
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(filepath)
    if not file_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {filepath}")

    logger.info(f"Loading catalog: {filepath}")
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise CatalogLoadError(f"Catalog file is not valid JSON: {e}")
    except OSError as e:
        raise CatalogLoadError(f"Could not read catalog file: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("context"), dict):
        raise CatalogLoadError("Catalog file must contain a 'context' object")

    context_data = data["context"]
    try:
        context = PressContext(
            id=context_data["id"],
            path=context_data["path"],
            base_url=context_data["base_url"],
            publisher=context_data.get("publisher", ""),
            primary_locale=context_data.get("primary_locale", ""),
            supported_locales=list(context_data.get("supported_locales", [])),
            name=context_data.get("name", ""),
            license_url=context_data.get("license_url"),
        )
        if "enabled_doi_types" in context_data:
            context.enabled_doi_types = list(context_data["enabled_doi_types"])
        publications: List[Publication] = [
            _publication(publication, context) for publication in data.get("publications", [])
        ]
    except KeyError as e:
        raise CatalogLoadError(f"Missing required field {e} in catalog file")
    except (TypeError, ValueError) as e:
        raise CatalogLoadError(f"Invalid catalog file: {e}")

    logger.info(f"Loaded {len(publications)} publication(s) for press '{context.path}'")
    return context, InMemoryCatalogRepository(publications)
