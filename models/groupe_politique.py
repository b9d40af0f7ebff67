from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, UniqueConstraint
from datetime import datetime
from models.base import Base, Chambre


class GroupePolitique(Base):
    """
    Political group of a chamber.

    Design:
    - Looked up by (acronyme, chambre); the unique constraint is what keeps
      concurrent lookup-or-create calls from producing duplicates
    - nombre_membres is derived: recomputed after each bulk load of members,
      never incremented while records are being loaded
    """
    __tablename__ = "groupes_politiques"

    id = Column(Integer, primary_key=True, autoincrement=True)

    acronyme = Column(String(50), nullable=False)
    nom = Column(String(255), nullable=False)
    chambre = Column(Enum(Chambre), nullable=False, index=True)

    # Assemblée nationale organe reference, when known
    organe_uid = Column(String(50), nullable=True, index=True)
    position_politique = Column(String(100), nullable=True)
    couleur = Column(String(20), nullable=True)

    actif = Column(Boolean, nullable=False, default=True)
    nombre_membres = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("acronyme", "chambre", name="uq_groupe_acronyme_chambre"),
    )
