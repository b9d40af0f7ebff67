"""
Archives of JSON or XML documents, one entity per file.
"""

import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ingestion.fetcher import ArchiveContents
from ingestion.formats.base import SourceFormat, ParseResult, ParseFailure
import logging

logger = logging.getLogger(__name__)

TEXT_KEY = "#text"


def local_name(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def element_to_dict(element: ET.Element) -> Any:
    """
    Convert an XML element to plain data.

    Leaf elements become their text; attributes are prefixed with '@';
    repeated children become lists; text next to children goes under '#text'.
    """
    children = list(element)
    attributes = {f"@{local_name(k)}": v for k, v in element.attrib.items()}
    text = (element.text or "").strip()

    if not children and not attributes:
        return text or None

    result: Dict[str, Any] = dict(attributes)
    for child in children:
        key = local_name(child.tag)
        value = element_to_dict(child)
        if key in result:
            if not isinstance(result[key], list):
                result[key] = [result[key]]
            result[key].append(value)
        else:
            result[key] = value
    if text:
        result[TEXT_KEY] = text
    return result


def flatten(mapping: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested objects into dotted keys; lists are kept as values"""
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value:
            flat.update(flatten(value, path))
        elif isinstance(value, dict):
            flat[path] = None
        else:
            flat[path] = value
    return flat


class ArchivedMarkupFormat(SourceFormat):
    """
    Parse every JSON or XML file of an extracted archive.

    Each document's root key names the entity kind ("acteur", "organe", ...).
    Records are flattened and tagged with `_kind` and `_entry` (the file's
    path inside the archive). Unreadable files are reported as failures.
    """

    name = "archive"
    payload = "archive"

    def __init__(self, extensions: Iterable[str] = (".json", ".xml")):
        self.extensions = tuple(e.lower() for e in extensions)

    def parse(self, raw: ArchiveContents) -> ParseResult:
        result = ParseResult()

        for entry in raw.failed_entries:
            result.failures.append(ParseFailure(None, "Unreadable archive entry", entry=entry))

        for position, path in enumerate(raw.files):
            if path.suffix.lower() not in self.extensions:
                continue
            entry = raw.relative(path)
            try:
                document = self._load(path)
            except (ValueError, ET.ParseError, OSError) as e:
                logger.warning(f"Skipping unreadable document {entry}: {e}")
                result.failures.append(ParseFailure(position, str(e), entry=entry))
                continue

            records = self._records(document, entry)
            if not records:
                result.failures.append(ParseFailure(position, "Document holds no object", entry=entry))
                continue
            result.records.extend(records)

        logger.info(
            f"Parsed {len(result.records)} archived documents "
            f"({len(result.failures)} unreadable)"
        )
        return result

    @staticmethod
    def _load(path: Path) -> Any:
        if path.suffix.lower() == ".xml":
            root = ET.parse(path).getroot()
            return {local_name(root.tag): element_to_dict(root)}
        return json.loads(path.read_bytes())

    @staticmethod
    def _records(document: Any, entry: str) -> List[Dict[str, Any]]:
        if not isinstance(document, dict):
            return []

        records = []
        for kind, body in document.items():
            bodies = body if isinstance(body, list) else [body]
            for item in bodies:
                if not isinstance(item, dict):
                    continue
                record = flatten(item)
                record["_kind"] = kind
                record["_entry"] = entry
                records.append(record)
        return records


def unflatten(record: Dict[str, Any], prefix: str) -> Optional[Dict[str, Any]]:
    """
    Rebuild the nested object stored under `prefix` in a flattened record.

    Returns None when no key starts with the prefix.
    """
    start = f"{prefix}."
    nested: Dict[str, Any] = {}
    for key, value in record.items():
        if not key.startswith(start):
            continue
        parts = key[len(start):].split(".")
        target = nested
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value
    return nested or None
