"""Version information for DataCite Export."""

__version__ = "0.1.0"
__version_info__ = (0, 1, 0)

# Release information
__license__ = "GNU General Public License v3.0"
__description__ = "DataCite kernel-4 export and DOI deposit for monographs, chapters and publication formats"
