from sqlalchemy import Column, Integer, String, Date, DateTime, Float, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


class Depute(Base):
    """
    Member of the Assemblée nationale.

    Natural key: slug ("prenom-nom"), shared by the nosdeputes.fr and
    Assemblée nationale open-data sources so both reconcile to one row.

    Activity statistics are nullable: None means the source did not
    report the value, 0 is an observed value.
    """
    __tablename__ = "deputes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(150), nullable=False, unique=True)
    acteur_uid = Column(String(50), nullable=True, index=True)

    # Identity
    civilite = Column(String(5), nullable=False)
    prenom = Column(String(100), nullable=False)
    nom = Column(String(100), nullable=False, index=True)
    date_naissance = Column(Date, nullable=True)
    lieu_naissance = Column(String(200), nullable=True)
    profession = Column(String(255), nullable=True)

    # Mandate
    legislature = Column(Integer, nullable=True)
    numero_circonscription = Column(Integer, nullable=True)
    departement = Column(String(100), nullable=True)
    code_departement = Column(String(5), nullable=True)
    date_debut_mandat = Column(Date, nullable=True)
    date_fin_mandat = Column(Date, nullable=True)
    mandat_en_cours = Column(Boolean, nullable=False, default=True, index=True)
    groupe_id = Column(Integer, ForeignKey("groupes_politiques.id"), nullable=True, index=True)

    # Activity
    presence_commission = Column(Float, nullable=True)
    presence_hemicycle = Column(Float, nullable=True)
    interventions = Column(Integer, nullable=True)
    questions_ecrites = Column(Integer, nullable=True)
    questions_orales = Column(Integer, nullable=True)
    propositions_loi = Column(Integer, nullable=True)
    rapports = Column(Integer, nullable=True)
    amendements_proposes = Column(Integer, nullable=True)
    amendements_adoptes = Column(Integer, nullable=True)

    # Contact and links
    email = Column(String(255), nullable=True)
    twitter = Column(String(100), nullable=True)
    site_web = Column(String(500), nullable=True)
    url_nosdeputes = Column(String(500), nullable=True)
    url_assemblee = Column(String(500), nullable=True)
    photo_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    groupe = relationship("GroupePolitique")

    __table_args__ = (
        Index("idx_depute_groupe_mandat", "groupe_id", "mandat_en_cours"),
    )


class Senateur(Base):
    """
    Member of the Sénat. Natural key: matricule.
    """
    __tablename__ = "senateurs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    matricule = Column(String(20), nullable=False, unique=True)

    civilite = Column(String(5), nullable=False)
    prenom = Column(String(100), nullable=False)
    nom = Column(String(100), nullable=False, index=True)
    profession = Column(String(255), nullable=True)

    departement = Column(String(100), nullable=True)
    code_departement = Column(String(5), nullable=True)
    serie_senat = Column(Integer, nullable=True)
    date_debut_mandat = Column(Date, nullable=True)
    date_fin_mandat = Column(Date, nullable=True)
    mandat_en_cours = Column(Boolean, nullable=False, default=True, index=True)
    groupe_id = Column(Integer, ForeignKey("groupes_politiques.id"), nullable=True, index=True)

    twitter = Column(String(100), nullable=True)
    photo_url = Column(String(500), nullable=True)
    url_senat = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    groupe = relationship("GroupePolitique")

    __table_args__ = (
        Index("idx_senateur_groupe_mandat", "groupe_id", "mandat_en_cours"),
    )


class Maire(Base):
    """
    Mayor from the Répertoire National des Élus.

    Natural key: rne_id, built from the commune code and the normalized
    last and first names since the registry export has no stable identifier.
    """
    __tablename__ = "maires"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rne_id = Column(String(255), nullable=False, unique=True)

    civilite = Column(String(5), nullable=False)
    prenom = Column(String(100), nullable=False)
    nom = Column(String(100), nullable=False, index=True)
    date_naissance = Column(Date, nullable=True)
    profession = Column(String(255), nullable=True)

    code_commune = Column(String(10), nullable=False, index=True)
    libelle_commune = Column(String(200), nullable=False)
    code_departement = Column(String(5), nullable=False, index=True)
    libelle_departement = Column(String(100), nullable=False)

    date_debut_mandat = Column(Date, nullable=True)
    date_debut_fonction = Column(Date, nullable=True)
    fonction_mandat = Column(String(50), nullable=False, default="Maire")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
