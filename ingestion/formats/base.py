"""
Abstract base class for source formats.

A format turns a raw payload into a record set plus the list of entries
that could not be read. A payload whose overall shape is unrecognized
raises ParseError instead.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ParseFailure:
    """A row or archive entry that never became a record"""
    position: Optional[int]
    reason: str
    entry: Optional[str] = None


@dataclass
class ParseResult:
    records: List[Dict[str, Any]] = field(default_factory=list)
    failures: List[ParseFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


class SourceFormat(ABC):
    """
    Base class for payload parsers.

    Subclasses set `payload` to tell the runner what to hand them:
    "bytes" for a downloaded body, "archive" for extracted archive contents.
    """

    name: str = "base"
    payload: str = "bytes"

    @abstractmethod
    def parse(self, raw: Any) -> ParseResult:
        """
        Parse a raw payload.

        An empty payload yields an empty ParseResult.

        Raises:
            ParseError: when the payload shape is unrecognized
        """
        pass

    @staticmethod
    def is_empty(raw: Any) -> bool:
        if raw is None:
            return True
        if isinstance(raw, (bytes, str)):
            return not raw.strip()
        return False
