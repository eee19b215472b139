"""Utility functions for turning license URLs into human-readable rights statements."""

import logging
import re
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Creative Commons license codes as used in license URLs
CC_LICENSE_NAMES: Dict[str, str] = {
    "by": "Attribution",
    "by-sa": "Attribution-ShareAlike",
    "by-nd": "Attribution-NoDerivatives",
    "by-nc": "Attribution-NonCommercial",
    "by-nc-sa": "Attribution-NonCommercial-ShareAlike",
    "by-nc-nd": "Attribution-NonCommercial-NoDerivatives",
}

CC_LICENSE_PATTERN = re.compile(
    r"^https?://(?:www\.)?creativecommons\.org/licenses/(?P<code>[a-z-]+)/(?P<version>\d\.\d)/?",
    re.IGNORECASE,
)


def parse_cc_license(license_url: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Parse a Creative Commons license URL.

    Args:
        license_url: License URL, e.g. "https://creativecommons.org/licenses/by-nc/4.0/"

    Returns:
        Dictionary with "code", "version" and "name" (e.g. "Attribution-NonCommercial"),
        or None if the URL is not a known Creative Commons license.
    """
    if not license_url:
        return None
    match = CC_LICENSE_PATTERN.match(license_url.strip())
    if not match:
        return None
    code = match.group("code").lower()
    name = CC_LICENSE_NAMES.get(code)
    if name is None:
        logger.warning(f"Unknown Creative Commons license code: {code}")
        return None
    return {
        "code": code,
        "version": match.group("version"),
        "name": name,
    }


def license_badge_text(license_url: Optional[str]) -> str:
    """
    Plain-text rendering of the license badge shown for a license URL.

    Returns:
        "This work is licensed under a Creative Commons ... License." for
        Creative Commons URLs, an empty string for anything else.
    """
    license_data = parse_cc_license(license_url)
    if license_data is None:
        return ""
    version = license_data["version"]
    suffix = "International" if version == "4.0" else "Unported"
    return (
        f"This work is licensed under a Creative Commons {license_data['name']} "
        f"{version} {suffix} License."
    )
