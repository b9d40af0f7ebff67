"""
Deputies from the Assemblée nationale open-data archive.

The archive holds one document per entity: `organe` documents describe
bodies (political groups have codeType "GP") and `acteur` documents
describe people with their mandates. Groups are resolved once in
prepare(); each acteur with an active ASSEMBLEE mandate becomes a deputy.
"""

import re
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import RecordMappingFailure
from ingestion.formats.archive import unflatten
from ingestion.mappers.base import (
    RecordMapper,
    MappingContext,
    dig,
    text_of,
    as_list,
    parse_date,
    parse_int,
    normalize_civilite,
    slugify,
)
from models.base import Chambre
from schemas.normalized import DeputeANData
import logging

logger = logging.getLogger(__name__)

DEPUTE_URL = "https://www.assemblee-nationale.fr/dyn/deputes/{uid}"
GROUP_CODE = "GP"
ASSEMBLY_CODE = "ASSEMBLEE"
EMAIL_ADDRESS_TYPE = "15"
TWITTER_ADDRESS_TYPE = "24"
TWITTER_HANDLE = re.compile(r"(?:twitter|x)\.com/([^/?#]+)")


def value_of(record: Dict[str, Any], key: str) -> Optional[str]:
    """Text of a flattened field, whether stored plain or as a '#text' node"""
    value = record.get(key)
    if value is None:
        value = record.get(f"{key}.#text")
    return text_of(value)


def nested_list(record: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """A repeated element, stored as a list or flattened when it occurs once"""
    if key in record:
        return [item for item in as_list(record[key]) if isinstance(item, dict)]
    single = unflatten(record, key)
    return [single] if single else []


def group_acronym(organe: Dict[str, Any]) -> Optional[str]:
    acronyme = value_of(organe, "libelleAbrev") or value_of(organe, "libelleAbrege")
    if acronyme:
        return acronyme
    libelle = value_of(organe, "libelle")
    return libelle[:10] if libelle else None


def active_mandate(mandats: List[Dict[str, Any]], type_organe: str) -> Optional[Dict[str, Any]]:
    for mandat in mandats:
        if text_of(mandat.get("typeOrgane")) == type_organe and not text_of(mandat.get("dateFin")):
            return mandat
    return None


def mandate_organe(mandat: Dict[str, Any]) -> Optional[str]:
    refs = mandat.get("organesRef") or dig(mandat, "organes", "organeRef")
    refs = as_list(refs)
    return text_of(refs[0]) if refs else None


def extract_email(adresses: List[Dict[str, Any]]) -> Optional[str]:
    for adresse in adresses:
        if text_of(adresse.get("type")) == EMAIL_ADDRESS_TYPE or text_of(adresse.get("typeLibelle")) == "Mèl":
            return text_of(adresse.get("valElec"))
    return None


def extract_twitter(adresses: List[Dict[str, Any]]) -> Optional[str]:
    for adresse in adresses:
        value = text_of(adresse.get("valElec"))
        libelle = (text_of(adresse.get("typeLibelle")) or "").lower()
        if text_of(adresse.get("type")) == TWITTER_ADDRESS_TYPE or "twitter" in libelle or (value and "twitter.com" in value):
            if not value:
                continue
            match = TWITTER_HANDLE.search(value)
            if match:
                return f"@{match.group(1)}"
            return value if value.startswith("@") else f"@{value}"
    return None


class DeputeANMapper(RecordMapper):
    """Map acteur documents, linking deputies to the groups found in organe documents"""

    schema = DeputeANData

    async def prepare(self, records: List[Dict[str, Any]], context: MappingContext) -> List[Dict[str, Any]]:
        organes = [r for r in records if r.get("_kind") == "organe"]
        acteurs = [r for r in records if r.get("_kind") == "acteur"]

        context.lookups["organes"] = await self._resolve_groups(organes, context)

        kept = []
        for acteur in acteurs:
            mandats = nested_list(acteur, "mandats.mandat")
            if value_of(acteur, "uid") and active_mandate(mandats, ASSEMBLY_CODE) is None:
                continue
            kept.append(acteur)

        logger.info(
            f"{len(context.lookups['organes'])} political groups, "
            f"{len(kept)} sitting deputies (of {len(acteurs)} acteurs)"
        )
        return kept

    async def _resolve_groups(self, organes: List[Dict[str, Any]], context: MappingContext) -> Dict[str, int]:
        groups: Dict[str, int] = {}
        for organe in organes:
            if value_of(organe, "codeType") != GROUP_CODE:
                continue
            uid = value_of(organe, "uid")
            acronyme = group_acronym(organe)
            if not uid or not acronyme:
                logger.warning(f"Skipping group without uid or label in {organe.get('_entry')}")
                continue
            try:
                groupe_id = await context.resolve_group(
                    acronyme,
                    Chambre.ASSEMBLEE,
                    nom=value_of(organe, "libelle"),
                    organe_uid=uid,
                    position_politique=value_of(organe, "positionPolitique"),
                    couleur=value_of(organe, "couleurAssociee"),
                    actif=not value_of(organe, "viMoDe.dateFin"),
                )
            except SQLAlchemyError as e:
                await context.db.rollback()
                logger.error(f"Could not store group {uid} ({acronyme}): {e}")
                continue
            groups[uid] = groupe_id
        return groups

    async def map(self, record: Dict[str, Any], context: MappingContext) -> DeputeANData:
        uid = value_of(record, "uid")
        if not uid:
            raise RecordMappingFailure(
                "Missing acteur uid",
                context={"dataset": context.dataset, "field_name": "uid", "entry": record.get("_entry")}
            )

        prenom = value_of(record, "etatCivil.ident.prenom")
        nom = value_of(record, "etatCivil.ident.nom")
        if not prenom or not nom:
            raise RecordMappingFailure(
                "Missing deputy name",
                context={"dataset": context.dataset, "field_name": "etatCivil.ident", "acteur_uid": uid}
            )

        mandats = nested_list(record, "mandats.mandat")
        mandat = active_mandate(mandats, ASSEMBLY_CODE) or {}
        groupe_mandat = active_mandate(mandats, GROUP_CODE)
        organe_ref = mandate_organe(groupe_mandat) if groupe_mandat else None
        adresses = nested_list(record, "adresses.adresse")
        lieu = dig(mandat, "election", "lieu") or {}
        fin = parse_date(mandat.get("dateFin"))

        return self.build(
            slug=slugify(prenom, nom),
            acteur_uid=uid,
            civilite=normalize_civilite(value_of(record, "etatCivil.ident.civ")) or "M.",
            prenom=prenom,
            nom=nom,
            date_naissance=parse_date(value_of(record, "etatCivil.infoNaissance.dateNais")),
            lieu_naissance=value_of(record, "etatCivil.infoNaissance.villeNais"),
            profession=value_of(record, "profession.libelleCourant"),
            legislature=parse_int(mandat.get("legislature")),
            numero_circonscription=parse_int(lieu.get("numCirco")),
            departement=text_of(lieu.get("nomDepartement")),
            code_departement=text_of(lieu.get("numDepartement")),
            date_debut_mandat=parse_date(mandat.get("dateDebut")),
            date_fin_mandat=fin,
            mandat_en_cours=fin is None,
            groupe_id=context.lookups.get("organes", {}).get(organe_ref),
            email=extract_email(adresses),
            twitter=extract_twitter(adresses),
            url_assemblee=DEPUTE_URL.format(uid=uid),
        )
