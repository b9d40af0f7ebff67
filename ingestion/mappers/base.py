"""
Abstract base class for record mappers and shared mapping helpers.

A mapper turns one raw source record into a normalized entity. It may
look up or create the political group the record refers to through the
MappingContext, which remembers group ids for the rest of the run.
"""

import re
import unicodedata
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import RecordMappingFailure
from models.base import Chambre
from models.groupe_politique import GroupePolitique
from schemas.normalized import NormalizedEntity
import logging

logger = logging.getLogger(__name__)


class MappingContext:
    """
    Per-run state shared by all records of one dataset run.

    Group ids are cached as plain integers so a rollback of a failed
    record never leaves a stale ORM object in the cache.
    """

    def __init__(self, db_session: AsyncSession, dataset: str):
        self.db = db_session
        self.dataset = dataset
        self.lookups: Dict[str, Any] = {}
        self._groups: Dict[Tuple[str, Chambre], int] = {}
        self.groups_created = 0

    async def resolve_group(
        self,
        acronyme: Optional[str],
        chambre: Chambre,
        nom: Optional[str] = None,
        **details: Any
    ) -> Optional[int]:
        """
        Look up a group by (acronyme, chambre), creating it when absent.

        A new group is committed immediately so later records of the run
        see it. `details` (organe_uid, couleur, ...) are written on
        creation and refreshed on an existing group when given.

        Returns:
            The group id, or None when no acronym is given
        """
        if not acronyme:
            return None
        cache_key = (acronyme, chambre)
        if cache_key in self._groups and not details:
            return self._groups[cache_key]

        groupe = await self._find_group(acronyme, chambre)
        if groupe is None:
            groupe = GroupePolitique(
                acronyme=acronyme,
                nom=nom or acronyme,
                chambre=chambre,
                actif=details.pop("actif", True),
                nombre_membres=0,
                **details
            )
            self.db.add(groupe)
            try:
                await self.db.commit()
                self.groups_created += 1
                logger.info(f"Created group {acronyme} ({chambre.value})")
            except IntegrityError:
                # Created concurrently; the row now exists
                await self.db.rollback()
                groupe = await self._find_group(acronyme, chambre)
                if groupe is None:
                    raise
        elif details or (nom and groupe.nom != nom):
            if nom:
                groupe.nom = nom
            for key, value in details.items():
                setattr(groupe, key, value)
            await self.db.commit()

        self._groups[cache_key] = groupe.id
        return groupe.id

    async def _find_group(self, acronyme: str, chambre: Chambre) -> Optional[GroupePolitique]:
        result = await self.db.execute(
            select(GroupePolitique).where(
                GroupePolitique.acronyme == acronyme,
                GroupePolitique.chambre == chambre
            )
        )
        return result.scalar_one_or_none()


class RecordMapper(ABC):
    """
    Base class for dataset mappers.

    Subclasses must implement:
    - map(): Normalize one raw record into `schema`
    """

    schema: Type[NormalizedEntity]

    async def prepare(self, records: List[Dict[str, Any]], context: MappingContext) -> List[Dict[str, Any]]:
        """Hook run once before the record loop; returns the records to map"""
        return records

    @abstractmethod
    async def map(self, record: Dict[str, Any], context: MappingContext) -> NormalizedEntity:
        """
        Normalize one record.

        Raises:
            RecordMappingFailure: when a required field is missing or invalid
        """
        pass

    def build(self, **values: Any) -> NormalizedEntity:
        return self.schema(**values)


# ============================================================================
# Helpers
# ============================================================================

def require(record: Dict[str, Any], key: str, dataset: str) -> Any:
    value = record.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise RecordMappingFailure(
            f"Missing required field '{key}'",
            context={"dataset": dataset, "field_name": key}
        )
    return value


def dig(data: Any, *path: str) -> Any:
    """Follow nested keys, returning None at the first missing step"""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def text_of(value: Any) -> Optional[str]:
    """Text of a scalar or of an XML-derived node ({'#text': ...}); nil nodes give None"""
    if isinstance(value, dict):
        value = value.get("#text")
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def parse_date(value: Any) -> Optional[date]:
    """ISO dates, ISO timestamps and dd/mm/yyyy; anything else is unknown"""
    text = text_of(value)
    if not text:
        return None
    for candidate, fmt in ((text[:10], "%Y-%m-%d"), (text, "%d/%m/%Y")):
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = text_of(value)
    if text is None:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def parse_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = text_of(value)
    if text is None:
        return None
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return None


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def slugify(*parts: str) -> str:
    """'Jean-Luc', 'Mélenchon' -> 'jean-luc-melenchon'"""
    slugs = []
    for part in parts:
        slug = re.sub(r"[^a-z0-9]+", "-", strip_accents(part).lower()).strip("-")
        if slug:
            slugs.append(slug)
    return "-".join(slugs)


def civilite_from_sexe(sexe: Any) -> str:
    return "Mme" if text_of(sexe) in ("F", "f") else "M."


def normalize_civilite(value: Any) -> Optional[str]:
    text = text_of(value)
    if text is None:
        return None
    return "M." if text.rstrip(".").upper() == "M" else "Mme"


def pad_code(value: Any, width: int = 2) -> Optional[str]:
    text = text_of(value)
    return text.zfill(width) if text else None
