from sqlalchemy import Column, Integer, String, Enum, Date, DateTime, Text, Index
from datetime import datetime
from models.base import Base, Chambre, ResultatScrutin


class Scrutin(Base):
    """
    Public vote of the Assemblée nationale. Natural key: uid ("VTANR5L17V123").

    Vote counts are nullable: None means the source did not report them.
    """
    __tablename__ = "scrutins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(String(50), nullable=False, unique=True)

    numero = Column(Integer, nullable=False)
    chambre = Column(Enum(Chambre), nullable=False, default=Chambre.ASSEMBLEE)
    legislature = Column(Integer, nullable=False)
    date_scrutin = Column(Date, nullable=True, index=True)

    titre = Column(Text, nullable=False)
    objet = Column(Text, nullable=True)

    nombre_votants = Column(Integer, nullable=True)
    suffrages_exprimes = Column(Integer, nullable=True)
    majorite_absolue = Column(Integer, nullable=True)
    pour = Column(Integer, nullable=True)
    contre = Column(Integer, nullable=True)
    abstentions = Column(Integer, nullable=True)
    non_votants = Column(Integer, nullable=True)
    resultat = Column(Enum(ResultatScrutin), nullable=False)

    url_scrutin = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_scrutins_legislature_numero", "legislature", "numero"),
    )
