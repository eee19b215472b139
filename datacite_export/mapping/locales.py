"""Locale precedence and translation lookup for localized metadata."""

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from datacite_export.models import PressContext

logger = logging.getLogger(__name__)


def resolve_precedence(context: PressContext, locale: Optional[str] = None) -> List[str]:
    """
    Identify the locale precedence for an export.

    Args:
        context: Press the entity belongs to
        locale: The entity's own locale, if any

    Returns:
        Locales in descending order of priority, without duplicates.
        The list always contains the press primary locale.
    """
    locales: List[str] = []
    if locale:
        locales.append(locale)
    if context.primary_locale not in locales:
        locales.append(context.primary_locale)
    # Sorted so that the fallback order is well defined
    for form_locale in sorted(context.supported_locales):
        if form_locale and form_locale not in locales:
            locales.append(form_locale)
    return locales


def get_primary_translation(localized: Optional[Dict[str, Any]], precedence: List[str]) -> Any:
    """
    Pick the best available translation of a localized value.

    Walks the precedence list first, then falls back to any non-empty
    translation in alphabetical order of locales.

    Returns:
        The value, or None if no non-empty translation exists.

    Examples:
        >>> get_primary_translation({"en": "A", "fr": "B"}, ["fr", "en"])
        'B'
        >>> get_primary_translation({}, ["en"]) is None
        True
    """
    if not localized:
        return None
    for locale in precedence:
        if localized.get(locale):
            return localized[locale]
    for locale in sorted(localized):
        if localized[locale]:
            return localized[locale]
    return None


def get_translations_by_precedence(
    localized: Optional[Dict[str, Any]],
    precedence: List[str]
) -> "OrderedDict[str, Any]":
    """
    Re-order localized data by locale precedence.

    Non-empty values for precedence locales come first, any remaining
    non-empty values follow in alphabetical order of their locale.
    """
    ordered: "OrderedDict[str, Any]" = OrderedDict()
    if not localized:
        return ordered
    remaining = dict(localized)
    for locale in precedence:
        value = remaining.pop(locale, None)
        if value:
            ordered[locale] = value
    for locale in sorted(remaining):
        if remaining[locale]:
            ordered[locale] = remaining[locale]
    return ordered


def to_xml_lang(locale: str) -> str:
    """Render a locale code (en_US) as a BCP-47 tag (en-US) for xml:lang."""
    return locale.replace("_", "-")


def iso1_from_locale(locale: str) -> str:
    """Return the ISO 639-1 language part of a locale code (en_US -> en)."""
    return locale.replace("-", "_").split("_")[0].lower()
