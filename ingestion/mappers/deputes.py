"""
Deputies from nosdeputes.fr.
"""

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional

from core.config import settings
from ingestion.fetcher import SourceFetcher
from ingestion.mappers.base import (
    RecordMapper,
    MappingContext,
    require,
    dig,
    parse_date,
    parse_int,
    parse_float,
    civilite_from_sexe,
    pad_code,
)
from models.base import Chambre
from schemas.normalized import DeputeData
import logging

logger = logging.getLogger(__name__)

PHOTO_URL = "https://www.nosdeputes.fr/depute/photo/{slug}/120"


class DeputeMapper(RecordMapper):
    """
    Map nosdeputes.fr deputies.

    Only deputies whose mandate started on or after `min_mandate_start`
    are kept, since the source also lists former deputies. When a fetcher
    is given, each deputy is enriched with its activity synthesis; any
    failure there leaves the statistics unknown.
    """

    schema = DeputeData

    def __init__(
        self,
        fetcher: Optional[SourceFetcher] = None,
        synthese_url: Optional[str] = None,
        request_delay: float = 0.0,
        min_mandate_start: Optional[date] = None,
        legislature: int = 17
    ):
        self.fetcher = fetcher
        self.synthese_url = synthese_url or settings.DEPUTES_SYNTHESE_URL
        self.request_delay = request_delay
        self.min_mandate_start = min_mandate_start
        self.legislature = legislature

    async def prepare(self, records: List[Dict[str, Any]], context: MappingContext) -> List[Dict[str, Any]]:
        if self.min_mandate_start is None:
            return records

        kept = []
        for record in records:
            start = parse_date(record.get("mandat_debut"))
            if start is not None and start >= self.min_mandate_start:
                kept.append(record)
        logger.info(
            f"{len(kept)} deputies with a mandate starting on or after "
            f"{self.min_mandate_start.isoformat()} (of {len(records)} listed)"
        )
        return kept

    async def map(self, record: Dict[str, Any], context: MappingContext) -> DeputeData:
        slug = require(record, "slug", context.dataset)

        groupe_id = await context.resolve_group(
            record.get("groupe_sigle"),
            Chambre.ASSEMBLEE,
            nom=dig(record, "groupe", "organisme")
        )
        fin = parse_date(record.get("mandat_fin"))
        stats = await self._fetch_stats(slug)

        return self.build(
            slug=slug,
            civilite=civilite_from_sexe(record.get("sexe")),
            prenom=record.get("prenom"),
            nom=record.get("nom_de_famille") or record.get("nom"),
            date_naissance=parse_date(record.get("date_naissance")),
            lieu_naissance=record.get("lieu_naissance"),
            profession=record.get("profession"),
            legislature=parse_int(record.get("legislature")) or self.legislature,
            numero_circonscription=parse_int(record.get("num_circo")),
            departement=record.get("nom_circo"),
            code_departement=pad_code(record.get("num_deptmt")),
            date_debut_mandat=parse_date(record.get("mandat_debut")),
            date_fin_mandat=fin,
            mandat_en_cours=fin is None,
            groupe_id=groupe_id,
            email=_first(record.get("emails"), "email"),
            twitter=record.get("twitter"),
            site_web=_first(record.get("sites_web"), "site"),
            url_nosdeputes=record.get("url_nosdeputes"),
            url_assemblee=record.get("url_an"),
            photo_url=PHOTO_URL.format(slug=slug),
            **stats
        )

    async def _fetch_stats(self, slug: str) -> Dict[str, Any]:
        if self.fetcher is None:
            return {}

        if self.request_delay:
            await asyncio.sleep(self.request_delay)
        synthese = await self.fetcher.fetch_optional_json(self.synthese_url.format(slug=slug))
        if not synthese:
            return {}
        return synthese_to_stats(synthese)


def synthese_to_stats(synthese: Dict[str, Any]) -> Dict[str, Any]:
    """Activity statistics from a synthesis document; absent values stay None"""
    data = synthese.get("depute", synthese)
    return {
        "presence_commission": parse_float(dig(data, "sempiternels", "commissions", "pct")),
        "presence_hemicycle": parse_float(dig(data, "sempiternels", "hemicycle", "pct")),
        "interventions": parse_int(dig(data, "sempiternels", "nbitvs")),
        "questions_ecrites": parse_int(dig(data, "stats", "questions_ecrites")),
        "questions_orales": parse_int(dig(data, "stats", "questions_orales")),
        "propositions_loi": parse_int(dig(data, "stats", "propositions_ecrites")),
        "rapports": parse_int(dig(data, "stats", "rapports")),
        "amendements_proposes": parse_int(dig(data, "stats", "amendements_proposes")),
        "amendements_adoptes": parse_int(dig(data, "stats", "amendements_adoptes")),
    }


def _first(items: Any, key: str) -> Optional[str]:
    """First value of a nosdeputes list such as [{"email": "..."}]"""
    if not isinstance(items, list):
        return None
    for item in items:
        value = item.get(key) if isinstance(item, dict) else item
        if value:
            return value
    return None
