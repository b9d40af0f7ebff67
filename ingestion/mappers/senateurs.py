"""
Senators from senat.fr.
"""

from typing import Any, Dict, Optional

from ingestion.mappers.base import (
    RecordMapper,
    MappingContext,
    require,
    dig,
    text_of,
    parse_date,
    parse_int,
    normalize_civilite,
    pad_code,
)
from models.base import Chambre
from schemas.normalized import SenateurData

SENAT_BASE_URL = "https://www.senat.fr"


class SenateurMapper(RecordMapper):
    """Map senat.fr senators; the export lists sitting senators only"""

    schema = SenateurData

    async def map(self, record: Dict[str, Any], context: MappingContext) -> SenateurData:
        matricule = require(record, "matricule", context.dataset)
        prenom = text_of(record.get("prenom"))

        groupe_id = await context.resolve_group(
            text_of(dig(record, "groupe", "code")),
            Chambre.SENAT,
            nom=text_of(dig(record, "groupe", "libelle"))
        )
        fin = parse_date(record.get("dateFinMandat"))

        return self.build(
            matricule=matricule,
            civilite=normalize_civilite(record.get("civilite")) or _guess_civilite(prenom),
            prenom=prenom,
            nom=record.get("nom"),
            profession=text_of(dig(record, "categorieProfessionnelle", "libelle")),
            departement=text_of(dig(record, "circonscription", "libelle")),
            code_departement=pad_code(dig(record, "circonscription", "code")),
            serie_senat=parse_int(record.get("serie")),
            date_debut_mandat=parse_date(record.get("dateDebutMandat")),
            date_fin_mandat=fin,
            mandat_en_cours=fin is None,
            groupe_id=groupe_id,
            twitter=record.get("twitter"),
            photo_url=_absolute(record.get("urlAvatar")),
            url_senat=_absolute(record.get("url")),
        )


def _guess_civilite(prenom: Optional[str]) -> str:
    return "Mme" if prenom and prenom.endswith("e") else "M."


def _absolute(path: Any) -> Optional[str]:
    path = text_of(path)
    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"{SENAT_BASE_URL}{path}"
