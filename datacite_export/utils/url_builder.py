"""Canonical landing page URLs for exported entities."""

import logging
from typing import Optional
from urllib.parse import quote, urlparse, urlunparse

from datacite_export.models import Chapter, Exportable, PressContext, Publication, PublicationFormat

logger = logging.getLogger(__name__)


class LandingPageUrlBuilder:
    """Build catalog URLs for publications, chapters and publication formats."""

    # Deposited test URLs must never point at the production server
    TEST_HOST = "example.com"

    def __init__(self, context: PressContext, test_mode: bool = False):
        """
        Initialize the URL builder.

        Args:
            context: Press whose catalog hosts the landing pages
            test_mode: If True, rewrite the host of every URL to TEST_HOST
        """
        self.context = context
        self.test_mode = test_mode

    def _page_url(self, *segments) -> str:
        base = self.context.base_url.rstrip("/")
        path = "/".join(quote(str(segment), safe="") for segment in segments)
        return f"{base}/index.php/{quote(self.context.path, safe='')}/{path}"

    def get_url(self, entity: Exportable, parent: Optional[Publication] = None) -> str:
        """
        Resolve the landing page URL of an entity.

        Args:
            entity: Publication, Chapter or PublicationFormat
            parent: The parent publication (required for chapters and formats)

        Returns:
            Absolute URL of the catalog page

        Raises:
            ValueError: If a chapter or format is passed without its parent
        """
        if isinstance(entity, Publication):
            url = self._page_url("catalog", "book", entity.submission_id)
        elif isinstance(entity, Chapter):
            if parent is None:
                raise ValueError(f"Chapter {entity.id} needs its parent publication")
            url = self._page_url(
                "catalog", "book", parent.submission_id, "chapter", entity.source_chapter_id
            )
        elif isinstance(entity, PublicationFormat):
            if parent is None:
                raise ValueError(f"Publication format {entity.id} needs its parent publication")
            if entity.proof_file_id is not None:
                url = self._page_url(
                    "catalog", "view", parent.submission_id, entity.id, entity.proof_file_id
                )
            else:
                url = self._page_url("catalog", "book", parent.submission_id)
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

        if self.test_mode:
            url = self.rewrite_host(url)
        return url

    @classmethod
    def rewrite_host(cls, url: str) -> str:
        """Replace the host (and port) of a URL with the test placeholder domain."""
        parsed = urlparse(url)
        rewritten = urlunparse(parsed._replace(netloc=cls.TEST_HOST))
        logger.debug(f"Test mode URL rewrite: '{url}' -> '{rewritten}'")
        return rewritten
