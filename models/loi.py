from sqlalchemy import Column, Integer, String, Enum, Date, DateTime, Text
from datetime import datetime
from models.base import Base, TypeLoi, StatutLoi


class Loi(Base):
    """
    Legislative file. Natural key: dossier_id ("nosdeputes-<id>").
    """
    __tablename__ = "lois"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dossier_id = Column(String(100), nullable=False, unique=True)

    titre = Column(Text, nullable=False)
    titre_court = Column(String(120), nullable=False)
    type = Column(Enum(TypeLoi), nullable=False, index=True)
    statut = Column(Enum(StatutLoi), nullable=False, index=True)

    date_depot = Column(Date, nullable=True, index=True)
    date_derniere_activite = Column(Date, nullable=True)
    nb_interventions = Column(Integer, nullable=True)

    url_dossier = Column(String(500), nullable=True)
    url_texte = Column(String(500), nullable=True)
    resume = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
