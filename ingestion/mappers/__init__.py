"""
Record mappers: raw source records to normalized entities.

Mappers:
    DeputeMapper: nosdeputes.fr deputies (optional activity synthesis)
    DeputeANMapper: Assemblée nationale open-data archive
    SenateurMapper: senat.fr senators
    MaireMapper: RNE mayors
    LoiMapper: nosdeputes.fr legislative files
    ScrutinMapper: Assemblée nationale public votes
"""

from ingestion.mappers.base import RecordMapper, MappingContext
from ingestion.mappers.deputes import DeputeMapper
from ingestion.mappers.deputes_an import DeputeANMapper
from ingestion.mappers.senateurs import SenateurMapper
from ingestion.mappers.maires import MaireMapper
from ingestion.mappers.lois import LoiMapper
from ingestion.mappers.scrutins import ScrutinMapper

__all__ = [
    "RecordMapper",
    "MappingContext",
    "DeputeMapper",
    "DeputeANMapper",
    "SenateurMapper",
    "MaireMapper",
    "LoiMapper",
    "ScrutinMapper",
]
