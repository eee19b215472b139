"""DataCite Export - DataCite DOI registration for monograph metadata."""

__version__ = "0.1.0"
__author__ = "DataCite Export contributors"
__license__ = "GNU General Public License v3.0"
__description__ = "Export books, chapters and publication formats as DataCite XML and deposit them"
