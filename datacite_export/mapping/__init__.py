"""DataCite kernel-4 metadata mapping."""

from datacite_export.mapping.datacite_xml import DataciteXmlMapper, MappingError, create_test_doi
from datacite_export.mapping.node import Node, SerializationError, serialize_resource

__all__ = ['DataciteXmlMapper', 'MappingError', 'create_test_doi', 'Node', 'SerializationError', 'serialize_resource']
