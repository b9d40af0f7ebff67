"""
Public votes from the Assemblée nationale open-data archive.

The archive holds one `scrutin` document per vote; older exports wrap
them all in a single `scrutins` document. Counts come from the
`syntheseVote` block and the outcome from `sort.code` ("adopté", "rejeté").
"""

from typing import Any, Dict, List, Optional

from core.exceptions import RecordMappingFailure
from ingestion.formats.archive import flatten
from ingestion.mappers.base import RecordMapper, MappingContext, parse_date, parse_int
from ingestion.mappers.deputes_an import value_of, nested_list
from models.base import Chambre, ResultatScrutin
from schemas.normalized import ScrutinData
import logging

logger = logging.getLogger(__name__)

SCRUTIN_URL = "https://www.assemblee-nationale.fr/dyn/{legislature}/scrutins/{uid}"


def parse_resultat(code: str) -> ResultatScrutin:
    if "adopt" in code.lower():
        return ResultatScrutin.ADOPTE
    return ResultatScrutin.REJETE


def first_count(record: Dict[str, Any], *keys: str) -> Optional[int]:
    """First count found among `keys`; exports differ in where they put the totals"""
    for key in keys:
        value = parse_int(value_of(record, key))
        if value is not None:
            return value
    return None


class ScrutinMapper(RecordMapper):
    schema = ScrutinData

    def __init__(self, legislature: int = 17):
        self.legislature = legislature

    async def prepare(self, records: List[Dict[str, Any]], context: MappingContext) -> List[Dict[str, Any]]:
        scrutins = []
        for record in records:
            kind = record.get("_kind")
            if kind == "scrutin":
                scrutins.append(record)
            elif kind == "scrutins":
                for item in nested_list(record, "scrutin"):
                    flat = flatten(item)
                    flat["_kind"] = "scrutin"
                    flat["_entry"] = record.get("_entry")
                    scrutins.append(flat)

        logger.info(f"{len(scrutins)} votes in {len(records)} documents")
        return scrutins

    async def map(self, record: Dict[str, Any], context: MappingContext) -> ScrutinData:
        uid = value_of(record, "uid")
        if not uid:
            raise RecordMappingFailure(
                "Missing scrutin uid",
                context={"dataset": context.dataset, "field_name": "uid", "entry": record.get("_entry")}
            )

        code = value_of(record, "sort.code")
        if not code:
            raise RecordMappingFailure(
                "Missing vote outcome",
                context={"dataset": context.dataset, "field_name": "sort.code", "scrutin_uid": uid}
            )

        legislature = parse_int(value_of(record, "legislature")) or self.legislature
        suffrages = first_count(record, "syntheseVote.suffragesExprimes")
        majorite = first_count(record, "syntheseVote.nbrSuffragesRequis")
        if majorite is None and suffrages is not None:
            majorite = suffrages // 2 + 1

        return self.build(
            uid=uid,
            numero=parse_int(value_of(record, "numero")),
            chambre=Chambre.ASSEMBLEE,
            legislature=legislature,
            date_scrutin=parse_date(value_of(record, "dateScrutin")),
            titre=value_of(record, "titre"),
            objet=value_of(record, "objet.libelle"),
            nombre_votants=first_count(record, "syntheseVote.nombreVotants"),
            suffrages_exprimes=suffrages,
            majorite_absolue=majorite,
            pour=first_count(record, "syntheseVote.decompte.pour", "syntheseVote.pour.nombreMembresGroupe"),
            contre=first_count(record, "syntheseVote.decompte.contre", "syntheseVote.contre.nombreMembresGroupe"),
            abstentions=first_count(
                record, "syntheseVote.decompte.abstentions", "syntheseVote.abstention.nombreMembresGroupe"
            ),
            non_votants=first_count(
                record, "syntheseVote.decompte.nonVotants", "syntheseVote.nonVotant.nombreMembresGroupe"
            ),
            resultat=parse_resultat(code),
            url_scrutin=SCRUTIN_URL.format(legislature=legislature, uid=uid),
        )
