"""
Legislative files from nosdeputes.fr.

The source carries no procedural status, so type and status are inferred
from the title, the institution URL and the parliamentary activity.
"""

from datetime import date
from typing import Any, Dict, Optional

from ingestion.mappers.base import RecordMapper, MappingContext, require, text_of, parse_date, parse_int
from models.base import TypeLoi, StatutLoi
from schemas.normalized import LoiData

# Dissolution of the Assemblée nationale; files idle shortly before it lapsed
DISSOLUTION = date(2024, 6, 9)
LAPSE_WINDOW_DAYS = 30

SHORT_TITLE_LENGTH = 100


def infer_type(titre: str, url_institution: Optional[str]) -> TypeLoi:
    titre = titre.lower()
    url = (url_institution or "").lower()

    # "plfss" also contains "plf"
    if "projet de loi de financement de la sécurité sociale" in titre or "plfss" in url:
        return TypeLoi.PROJET_LOI_FINANCEMENT_SECU
    if "projet de loi de finances" in titre or "plf" in url:
        return TypeLoi.PROJET_LOI_FINANCES
    if "projet de loi de règlement" in titre:
        return TypeLoi.PROJET_LOI_REGLEMENT
    if "projet de loi organique" in titre:
        return TypeLoi.PROJET_LOI_ORGANIQUE
    if "proposition de loi organique" in titre:
        return TypeLoi.PROPOSITION_LOI_ORGANIQUE
    if "proposition de résolution" in titre:
        return TypeLoi.PROPOSITION_RESOLUTION
    if "projet de loi" in titre:
        return TypeLoi.PROJET_LOI
    return TypeLoi.PROPOSITION_LOI


def infer_status(derniere_activite: Optional[date], interventions: Optional[int]) -> StatutLoi:
    interventions = interventions or 0

    if derniere_activite is not None and derniere_activite < DISSOLUTION and interventions > 0:
        if (DISSOLUTION - derniere_activite).days < LAPSE_WINDOW_DAYS:
            return StatutLoi.CADUQUE

    if interventions > 100:
        return StatutLoi.EN_SEANCE
    if interventions > 10:
        return StatutLoi.EN_COMMISSION
    return StatutLoi.DEPOSE


def short_title(titre: str) -> str:
    if len(titre) > SHORT_TITLE_LENGTH:
        return titre[:SHORT_TITLE_LENGTH - 3] + "..."
    return titre


class LoiMapper(RecordMapper):
    schema = LoiData

    async def map(self, record: Dict[str, Any], context: MappingContext) -> LoiData:
        source_id = require(record, "id", context.dataset)
        titre = text_of(require(record, "titre", context.dataset))
        url_institution = text_of(record.get("url_institution"))

        min_date = parse_date(record.get("min_date"))
        max_date = parse_date(record.get("max_date"))
        interventions = parse_int(record.get("nb_interventions"))

        return self.build(
            dossier_id=f"nosdeputes-{source_id}",
            titre=titre,
            titre_court=short_title(titre),
            type=infer_type(titre, url_institution),
            statut=infer_status(max_date, interventions),
            date_depot=min_date,
            date_derniere_activite=max_date,
            nb_interventions=interventions,
            url_dossier=record.get("url_nosdeputes"),
            url_texte=url_institution,
            resume=_summary(interventions, record.get("min_date"), record.get("max_date")),
        )


def _summary(interventions: Optional[int], min_date: Any, max_date: Any) -> Optional[str]:
    if interventions is None:
        return None
    resume = f"Dossier législatif avec {interventions} interventions parlementaires."
    if min_date and max_date:
        resume += f" Période d'activité : du {min_date} au {max_date}."
    return resume
