"""Per-batch cache of publications, chapters and publication formats."""

import logging
from collections import OrderedDict
from typing import Any, Dict, Optional

from datacite_export.models import Chapter, Exportable, Publication, PublicationFormat

logger = logging.getLogger(__name__)

# Collection keys
CACHE_PUBLICATION = "publication"
CACHE_CHAPTER = "chapter"
CACHE_CHAPTERS_BY_PUBLICATION = "chaptersByPublication"
CACHE_FORMATS = "publicationFormats"
CACHE_FORMATS_BY_PUBLICATION = "publicationFormatsByPublication"


class CacheMissError(LookupError):
    """Raised by get() for a key that was never cached (a programming error)."""
    pass


class _ChildIndex(OrderedDict):
    """Children of one parent, keyed by secondary id."""

    def __init__(self):
        super().__init__()
        self.complete = False


class PubObjectCache:
    """
    Two-level keyed store scoped to one export batch.

    Single entries are addressed by ``(collection, id)``. Child indexes
    ("all chapters of publication 3") are addressed by
    ``(collection, parent_id, child_id)``; the whole index counts as cached
    only once it was marked complete.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[Any, Any]] = {}

    def add(self, entity: Exportable, parent: Optional[Publication] = None) -> None:
        """
        Cache an entity and, for chapters and formats, index it under its parent.

        Args:
            entity: Publication, Chapter or PublicationFormat
            parent: Parent publication of a chapter or format
        """
        if isinstance(entity, Publication):
            self._insert(entity, CACHE_PUBLICATION, entity.id)
        elif isinstance(entity, Chapter):
            self._insert(entity, CACHE_CHAPTER, entity.source_chapter_id)
            if parent is not None:
                self._insert(entity, CACHE_CHAPTERS_BY_PUBLICATION, parent.id, entity.source_chapter_id)
        elif isinstance(entity, PublicationFormat):
            self._insert(entity, CACHE_FORMATS, entity.id)
            if parent is not None:
                self._insert(entity, CACHE_FORMATS_BY_PUBLICATION, parent.id, entity.id)
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

    # Alias matching the put/get vocabulary
    put = add

    def mark_complete(self, collection: str, id1: Any) -> None:
        """
        Mark a child index as holding all children of ``id1``.

        A parent without children gets an empty complete index.
        """
        entries = self._collections.setdefault(collection, {})
        index = entries.get(id1)
        if not isinstance(index, _ChildIndex):
            index = entries[id1] = _ChildIndex()
        ordered = sorted(index.items(), key=lambda item: item[0])
        index.clear()
        index.update(ordered)
        index.complete = True

    def is_cached(self, collection: str, id1: Any, id2: Any = None) -> bool:
        """Return True if the addressed entry (or complete child index) is cached."""
        entries = self._collections.get(collection)
        if entries is None or id1 not in entries:
            return False
        entry = entries[id1]
        if id2 is None:
            if isinstance(entry, _ChildIndex):
                return entry.complete
            return True
        return isinstance(entry, _ChildIndex) and id2 in entry

    def get(self, collection: str, id1: Any, id2: Any = None) -> Any:
        """
        Return a cached entity, or a dict of children for a complete child index.

        Raises:
            CacheMissError: If the entry is not cached; callers must check is_cached() first
        """
        if not self.is_cached(collection, id1, id2):
            raise CacheMissError(f"{collection}[{id1}]" + (f"[{id2}]" if id2 is not None else "") + " is not cached")
        entry = self._collections[collection][id1]
        if id2 is None:
            return dict(entry) if isinstance(entry, _ChildIndex) else entry
        return entry[id2]

    def _insert(self, entity: Exportable, collection: str, id1: Any, id2: Any = None) -> None:
        if self.is_cached(collection, id1, id2):
            return
        entries = self._collections.setdefault(collection, {})
        if id2 is None:
            entries[id1] = entity
        else:
            index = entries.get(id1)
            if not isinstance(index, _ChildIndex):
                index = entries[id1] = _ChildIndex()
            index[id2] = entity
        logger.debug(f"Cached {collection}[{id1}]" + (f"[{id2}]" if id2 is not None else ""))
