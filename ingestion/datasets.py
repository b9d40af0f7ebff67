"""
Dataset definitions: which source, format, mapper and table make up each dataset.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Optional, Tuple, Type

from core.config import Settings, settings as default_settings
from core.exceptions import UnknownDatasetError
from ingestion.fetcher import SourceFetcher
from ingestion.formats import SourceFormat, JsonListFormat, DelimitedTextFormat, ArchivedMarkupFormat
from ingestion.mappers import (
    RecordMapper,
    DeputeMapper,
    DeputeANMapper,
    SenateurMapper,
    MaireMapper,
    LoiMapper,
    ScrutinMapper,
)
from ingestion.mappers.maires import DATE_COLUMNS
from models.base import Base, Chambre
from models.elus import Depute, Senateur, Maire
from models.loi import Loi
from models.scrutin import Scrutin

# Order used when no datasets are named
DEFAULT_SEQUENCE = ("deputes", "senateurs", "maires", "lois")


@dataclass
class DatasetDefinition:
    """
    Everything the runner needs to synchronize one dataset.

    Attributes:
        mapper_factory: Builds the mapper for a run; receives the run's fetcher
            so mappers that enrich records can reuse its connection pool
        chambre: Chamber whose group member counts are recomputed after the
            load (None when the dataset has no groups)
        resources: Resource types announced as changed after a run with changes
    """
    name: str
    label: str
    url: str
    source_format: SourceFormat
    mapper_factory: Callable[[SourceFetcher], RecordMapper]
    model: Type[Base]
    chambre: Optional[Chambre] = None
    resources: Tuple[str, ...] = field(default_factory=tuple)


def build_registry(config: Optional[Settings] = None) -> Dict[str, DatasetDefinition]:
    """Dataset definitions keyed by identifier, with URLs taken from settings"""
    config = config or default_settings
    min_start = date.fromisoformat(config.DEPUTES_MIN_MANDATE_START) if config.DEPUTES_MIN_MANDATE_START else None

    def depute_mapper(fetcher: SourceFetcher) -> RecordMapper:
        return DeputeMapper(
            fetcher=fetcher if config.FETCH_DEPUTES_SYNTHESE else None,
            synthese_url=config.DEPUTES_SYNTHESE_URL,
            request_delay=config.REQUEST_DELAY_MS / 1000,
            min_mandate_start=min_start
        )

    definitions = [
        DatasetDefinition(
            name="deputes",
            label="Députés (nosdeputes.fr)",
            url=config.DEPUTES_URL,
            source_format=JsonListFormat(field="deputes", item_key="depute"),
            mapper_factory=depute_mapper,
            model=Depute,
            chambre=Chambre.ASSEMBLEE,
            resources=("deputes", "groupes"),
        ),
        DatasetDefinition(
            name="senateurs",
            label="Sénateurs (senat.fr)",
            url=config.SENATEURS_URL,
            source_format=JsonListFormat(),
            mapper_factory=lambda fetcher: SenateurMapper(),
            model=Senateur,
            chambre=Chambre.SENAT,
            resources=("senateurs", "groupes"),
        ),
        DatasetDefinition(
            name="maires",
            label="Maires (Répertoire National des Élus)",
            url=config.MAIRES_URL,
            source_format=DelimitedTextFormat(delimiter=";", date_columns=DATE_COLUMNS),
            mapper_factory=lambda fetcher: MaireMapper(),
            model=Maire,
            resources=("maires",),
        ),
        DatasetDefinition(
            name="lois",
            label="Dossiers législatifs (nosdeputes.fr)",
            url=config.LOIS_URL,
            source_format=JsonListFormat(field="sections", item_key="section"),
            mapper_factory=lambda fetcher: LoiMapper(),
            model=Loi,
            resources=("lois",),
        ),
        DatasetDefinition(
            name="deputes_an",
            label="Députés (open data Assemblée nationale)",
            url=config.DEPUTES_AN_URL,
            source_format=ArchivedMarkupFormat(),
            mapper_factory=lambda fetcher: DeputeANMapper(),
            model=Depute,
            chambre=Chambre.ASSEMBLEE,
            resources=("deputes", "groupes"),
        ),
        DatasetDefinition(
            name="scrutins",
            label="Scrutins publics (open data Assemblée nationale)",
            url=config.SCRUTINS_URL,
            source_format=ArchivedMarkupFormat(),
            mapper_factory=lambda fetcher: ScrutinMapper(legislature=config.SCRUTINS_LEGISLATURE),
            model=Scrutin,
            resources=("scrutins",),
        ),
    ]
    return {definition.name: definition for definition in definitions}


def get_dataset(name: str, registry: Optional[Dict[str, DatasetDefinition]] = None) -> DatasetDefinition:
    """
    Raises:
        UnknownDatasetError: when no definition exists for `name`
    """
    registry = registry if registry is not None else build_registry()
    definition = registry.get(name)
    if definition is None:
        raise UnknownDatasetError(
            f"Unknown dataset '{name}'",
            context={"dataset": name, "available": sorted(registry)}
        )
    return definition
