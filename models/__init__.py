"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (SyncStatus, Chambre, TypeLoi, StatutLoi, ResultatScrutin)
    sync_job: Append-only audit log of pipeline runs
    groupe_politique: Political groups keyed by (acronyme, chambre)
    elus: Elected officials (Depute, Senateur, Maire), each keyed by a natural key
    loi: Legislative files
    scrutin: Public votes of the Assemblée nationale

Importing this package registers every table on Base.metadata, so
`Base.metadata.create_all` always sees the full schema.

Relationships:
    - Depute → GroupePolitique (optional, resolved during mapping)
    - Senateur → GroupePolitique (optional, resolved during mapping)
    - SyncJob is independent of entity rows
"""

from models.base import Base, SyncStatus, Chambre, TypeLoi, StatutLoi, ResultatScrutin
from models.sync_job import SyncJob
from models.groupe_politique import GroupePolitique
from models.elus import Depute, Senateur, Maire
from models.loi import Loi
from models.scrutin import Scrutin

__all__ = [
    "Base",
    "SyncStatus",
    "Chambre",
    "TypeLoi",
    "StatutLoi",
    "ResultatScrutin",
    "SyncJob",
    "GroupePolitique",
    "Depute",
    "Senateur",
    "Maire",
    "Loi",
    "Scrutin",
]
