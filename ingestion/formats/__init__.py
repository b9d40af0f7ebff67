"""
Payload parsers.

Formats:
    JsonListFormat: JSON list at the top level or under a named field
    DelimitedTextFormat: Header-first delimited text read with pandas
    ArchivedMarkupFormat: Zip archive of JSON/XML documents
"""

from ingestion.formats.base import SourceFormat, ParseResult, ParseFailure
from ingestion.formats.json_list import JsonListFormat
from ingestion.formats.delimited import DelimitedTextFormat
from ingestion.formats.archive import ArchivedMarkupFormat

__all__ = [
    "SourceFormat",
    "ParseResult",
    "ParseFailure",
    "JsonListFormat",
    "DelimitedTextFormat",
    "ArchivedMarkupFormat",
]
