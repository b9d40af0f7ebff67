"""
JSON document holding a list of records.
"""

import json
from typing import Any, Optional, Union

from core.exceptions import ParseError
from ingestion.formats.base import SourceFormat, ParseResult, ParseFailure
import logging

logger = logging.getLogger(__name__)


class JsonListFormat(SourceFormat):
    """
    Parse a JSON list, either at the top level or under a named field.

    Args:
        field: Top-level key holding the list (None when the document is the list)
        item_key: Key wrapping each item, e.g. {"depute": {...}}
    """

    name = "json"

    def __init__(self, field: Optional[str] = None, item_key: Optional[str] = None):
        self.field = field
        self.item_key = item_key

    def parse(self, raw: Union[bytes, str]) -> ParseResult:
        if self.is_empty(raw):
            logger.warning("Empty JSON payload")
            return ParseResult()

        try:
            document = json.loads(raw)
        except ValueError as e:
            raise ParseError(
                "Payload is not valid JSON",
                context={"format": self.name},
                original_exception=e
            )

        items = self._locate_list(document)
        result = ParseResult()

        for position, item in enumerate(items):
            if self.item_key is not None and isinstance(item, dict):
                item = item.get(self.item_key)
            if not isinstance(item, dict):
                result.failures.append(ParseFailure(position, f"Expected an object, got {type(item).__name__}"))
                continue
            result.records.append(item)

        logger.info(f"Parsed {len(result.records)} JSON records ({len(result.failures)} unreadable)")
        return result

    def _locate_list(self, document: Any) -> list:
        if self.field is None:
            if not isinstance(document, list):
                raise ParseError(
                    "Expected a JSON list at the top level",
                    context={"format": self.name, "actual_type": type(document).__name__}
                )
            return document

        if not isinstance(document, dict) or not isinstance(document.get(self.field), list):
            raise ParseError(
                f"Expected a list under field '{self.field}'",
                context={"format": self.name, "expected_field": self.field}
            )
        return document[self.field]
