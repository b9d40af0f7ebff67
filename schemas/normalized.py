"""
Pydantic schemas for normalized entities with validation.

A mapper produces one of these per source record. Every field declared on
a schema is owned by the dataset that produces it: the upsert engine writes
all of them, None included, and leaves other columns alone.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, ClassVar
from datetime import date
from models.base import Chambre, TypeLoi, StatutLoi, ResultatScrutin


class NormalizedEntity(BaseModel):
    """Base schema: strips strings and exposes the natural key"""

    natural_key: ClassVar[str] = ""

    @validator("*", pre=True)
    def strip_strings(cls, v):
        """Trim whitespace; blank strings become None"""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    def key_value(self) -> str:
        return getattr(self, self.natural_key)


class DeputeData(NormalizedEntity):
    """Deputy as published by nosdeputes.fr"""

    natural_key: ClassVar[str] = "slug"

    slug: str = Field(..., min_length=1, max_length=150)
    civilite: str = Field(..., max_length=5)
    prenom: str = Field(..., min_length=1, max_length=100)
    nom: str = Field(..., min_length=1, max_length=100)
    date_naissance: Optional[date] = None
    lieu_naissance: Optional[str] = Field(None, max_length=200)
    profession: Optional[str] = Field(None, max_length=255)

    legislature: Optional[int] = None
    numero_circonscription: Optional[int] = None
    departement: Optional[str] = Field(None, max_length=100)
    code_departement: Optional[str] = Field(None, max_length=5)
    date_debut_mandat: Optional[date] = None
    date_fin_mandat: Optional[date] = None
    mandat_en_cours: bool
    groupe_id: Optional[int] = None

    presence_commission: Optional[float] = Field(None, ge=0)
    presence_hemicycle: Optional[float] = Field(None, ge=0)
    interventions: Optional[int] = Field(None, ge=0)
    questions_ecrites: Optional[int] = Field(None, ge=0)
    questions_orales: Optional[int] = Field(None, ge=0)
    propositions_loi: Optional[int] = Field(None, ge=0)
    rapports: Optional[int] = Field(None, ge=0)
    amendements_proposes: Optional[int] = Field(None, ge=0)
    amendements_adoptes: Optional[int] = Field(None, ge=0)

    email: Optional[str] = Field(None, max_length=255)
    twitter: Optional[str] = Field(None, max_length=100)
    site_web: Optional[str] = Field(None, max_length=500)
    url_nosdeputes: Optional[str] = Field(None, max_length=500)
    url_assemblee: Optional[str] = Field(None, max_length=500)
    photo_url: Optional[str] = Field(None, max_length=500)


class DeputeANData(NormalizedEntity):
    """
    Deputy as published by the Assemblée nationale open-data export.

    Carries no activity statistics, so a sync from this source never
    erases the ones imported from nosdeputes.fr.
    """

    natural_key: ClassVar[str] = "slug"

    slug: str = Field(..., min_length=1, max_length=150)
    acteur_uid: str = Field(..., min_length=1, max_length=50)
    civilite: str = Field(..., max_length=5)
    prenom: str = Field(..., min_length=1, max_length=100)
    nom: str = Field(..., min_length=1, max_length=100)
    date_naissance: Optional[date] = None
    lieu_naissance: Optional[str] = Field(None, max_length=200)
    profession: Optional[str] = Field(None, max_length=255)

    legislature: Optional[int] = None
    numero_circonscription: Optional[int] = None
    departement: Optional[str] = Field(None, max_length=100)
    code_departement: Optional[str] = Field(None, max_length=5)
    date_debut_mandat: Optional[date] = None
    date_fin_mandat: Optional[date] = None
    mandat_en_cours: bool
    groupe_id: Optional[int] = None

    email: Optional[str] = Field(None, max_length=255)
    twitter: Optional[str] = Field(None, max_length=100)
    url_assemblee: Optional[str] = Field(None, max_length=500)


class SenateurData(NormalizedEntity):
    """Senator as published by senat.fr"""

    natural_key: ClassVar[str] = "matricule"

    matricule: str = Field(..., min_length=1, max_length=20)
    civilite: str = Field(..., max_length=5)
    prenom: str = Field(..., min_length=1, max_length=100)
    nom: str = Field(..., min_length=1, max_length=100)
    profession: Optional[str] = Field(None, max_length=255)

    departement: Optional[str] = Field(None, max_length=100)
    code_departement: Optional[str] = Field(None, max_length=5)
    serie_senat: Optional[int] = None
    date_debut_mandat: Optional[date] = None
    date_fin_mandat: Optional[date] = None
    mandat_en_cours: bool
    groupe_id: Optional[int] = None

    twitter: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = Field(None, max_length=500)
    url_senat: Optional[str] = Field(None, max_length=500)


class MaireData(NormalizedEntity):
    """Mayor from the Répertoire National des Élus"""

    natural_key: ClassVar[str] = "rne_id"

    rne_id: str = Field(..., min_length=1, max_length=255)
    civilite: str = Field(..., max_length=5)
    prenom: str = Field(..., min_length=1, max_length=100)
    nom: str = Field(..., min_length=1, max_length=100)
    date_naissance: Optional[date] = None
    profession: Optional[str] = Field(None, max_length=255)

    code_commune: str = Field(..., min_length=1, max_length=10)
    libelle_commune: str = Field(..., max_length=200)
    code_departement: str = Field(..., max_length=5)
    libelle_departement: str = Field(..., max_length=100)

    date_debut_mandat: Optional[date] = None
    date_debut_fonction: Optional[date] = None
    fonction_mandat: str = "Maire"


class LoiData(NormalizedEntity):
    """Legislative file from nosdeputes.fr"""

    natural_key: ClassVar[str] = "dossier_id"

    dossier_id: str = Field(..., min_length=1, max_length=100)
    titre: str = Field(..., min_length=1)
    titre_court: str = Field(..., min_length=1, max_length=120)
    type: TypeLoi
    statut: StatutLoi
    date_depot: Optional[date] = None
    date_derniere_activite: Optional[date] = None
    nb_interventions: Optional[int] = Field(None, ge=0)
    url_dossier: Optional[str] = Field(None, max_length=500)
    url_texte: Optional[str] = Field(None, max_length=500)
    resume: Optional[str] = None


class ScrutinData(NormalizedEntity):
    """Public vote from the Assemblée nationale open-data archive"""

    natural_key: ClassVar[str] = "uid"

    uid: str = Field(..., min_length=1, max_length=50)
    numero: int = Field(..., ge=1)
    chambre: Chambre = Chambre.ASSEMBLEE
    legislature: int = Field(..., ge=1)
    date_scrutin: Optional[date] = None
    titre: str = Field(..., min_length=1)
    objet: Optional[str] = None
    nombre_votants: Optional[int] = Field(None, ge=0)
    suffrages_exprimes: Optional[int] = Field(None, ge=0)
    majorite_absolue: Optional[int] = Field(None, ge=0)
    pour: Optional[int] = Field(None, ge=0)
    contre: Optional[int] = Field(None, ge=0)
    abstentions: Optional[int] = Field(None, ge=0)
    non_votants: Optional[int] = Field(None, ge=0)
    resultat: ResultatScrutin
    url_scrutin: Optional[str] = Field(None, max_length=500)
