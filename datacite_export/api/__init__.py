"""DataCite API access."""
