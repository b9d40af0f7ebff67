"""
Mayors from the Répertoire National des Élus CSV export.
"""

from typing import Any, Dict

from ingestion.mappers.base import (
    RecordMapper,
    MappingContext,
    require,
    text_of,
    parse_date,
    civilite_from_sexe,
    strip_accents,
)
from schemas.normalized import MaireData

UNKNOWN_LABEL = "Non renseigné"

COLUMN_CODE_DEPARTEMENT = "Code du département"
COLUMN_LIBELLE_DEPARTEMENT = "Libellé du département"
COLUMN_CODE_COMMUNE = "Code de la commune"
COLUMN_LIBELLE_COMMUNE = "Libellé de la commune"
COLUMN_NOM = "Nom de l'élu"
COLUMN_PRENOM = "Prénom de l'élu"
COLUMN_SEXE = "Code sexe"
COLUMN_DATE_NAISSANCE = "Date de naissance"
COLUMN_PROFESSION = "Libellé de la catégorie socio-professionnelle"
COLUMN_DEBUT_MANDAT = "Date de début du mandat"
COLUMN_DEBUT_FONCTION = "Date de début de la fonction"

DATE_COLUMNS = (COLUMN_DATE_NAISSANCE, COLUMN_DEBUT_MANDAT, COLUMN_DEBUT_FONCTION)


def build_rne_id(code_commune: str, nom: str, prenom: str) -> str:
    """
    Natural key for a mayor: '<code commune>-<NOM>-<PRENOM>'.

    Names are upper-cased with accents stripped so spelling variants of the
    same person across exports map to one row.
    """
    return f"{code_commune.strip()}-{_normalize(nom)}-{_normalize(prenom)}"


def _normalize(value: str) -> str:
    return strip_accents(value.strip().upper())


class MaireMapper(RecordMapper):
    """Map RNE rows; dates arrive already converted to ISO by the CSV parser"""

    schema = MaireData

    async def map(self, record: Dict[str, Any], context: MappingContext) -> MaireData:
        nom = require(record, COLUMN_NOM, context.dataset)
        prenom = require(record, COLUMN_PRENOM, context.dataset)
        code_commune = require(record, COLUMN_CODE_COMMUNE, context.dataset)

        code_departement = text_of(record.get(COLUMN_CODE_DEPARTEMENT))

        return self.build(
            rne_id=build_rne_id(code_commune, nom, prenom),
            civilite=civilite_from_sexe(record.get(COLUMN_SEXE)),
            prenom=prenom,
            nom=nom,
            date_naissance=parse_date(record.get(COLUMN_DATE_NAISSANCE)),
            profession=record.get(COLUMN_PROFESSION),
            code_commune=code_commune,
            libelle_commune=text_of(record.get(COLUMN_LIBELLE_COMMUNE)) or UNKNOWN_LABEL,
            code_departement=code_departement.zfill(2) if code_departement else "00",
            libelle_departement=text_of(record.get(COLUMN_LIBELLE_DEPARTEMENT)) or UNKNOWN_LABEL,
            date_debut_mandat=parse_date(record.get(COLUMN_DEBUT_MANDAT)),
            date_debut_fonction=parse_date(record.get(COLUMN_DEBUT_FONCTION)),
        )
