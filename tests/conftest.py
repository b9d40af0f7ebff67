"""
Pytest configuration and fixtures
"""

import io
import json
import zipfile
from typing import AsyncGenerator, Dict

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.database import Database
from ingestion.datasets import build_registry
from ingestion.fetcher import SourceFetcher

DEPUTES_URL = "https://test.local/deputes/json"
SENATEURS_URL = "https://test.local/senateurs.json"
MAIRES_URL = "https://test.local/rne-maires.csv"
LOIS_URL = "https://test.local/dossiers/json"
DEPUTES_AN_URL = "https://test.local/an/deputes.json.zip"
SCRUTINS_URL = "https://test.local/an/scrutins.json.zip"
SYNTHESE_URL = "https://test.local/{slug}/synthese/json"


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database with every table created"""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.create_all()

    yield db

    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with database.session() as session:
        yield session


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        DEPUTES_URL=DEPUTES_URL,
        DEPUTES_SYNTHESE_URL=SYNTHESE_URL,
        DEPUTES_MIN_MANDATE_START="2022-06-01",
        FETCH_DEPUTES_SYNTHESE=False,
        SENATEURS_URL=SENATEURS_URL,
        MAIRES_URL=MAIRES_URL,
        LOIS_URL=LOIS_URL,
        DEPUTES_AN_URL=DEPUTES_AN_URL,
        SCRUTINS_URL=SCRUTINS_URL,
        SCRUTINS_LEGISLATURE=17,
        REQUEST_DELAY_MS=0,
    )


@pytest.fixture
def registry(test_settings):
    return build_registry(test_settings)


class FakeSources:
    """
    URL → response table served through httpx.MockTransport.

    Routes are registered by URL or by dataset name. Values are
    (status, body, headers) tuples, or callables taking the request.
    Unknown URLs answer 404. Every request is recorded.
    """

    urls = {
        "deputes": DEPUTES_URL,
        "senateurs": SENATEURS_URL,
        "maires": MAIRES_URL,
        "lois": LOIS_URL,
        "deputes_an": DEPUTES_AN_URL,
        "scrutins": SCRUTINS_URL,
    }

    def __init__(self):
        self.routes: Dict[str, object] = {}
        self.requests = []

    @staticmethod
    def synthese_url(slug: str) -> str:
        return SYNTHESE_URL.format(slug=slug)

    def add(self, url: str, body=b"", status: int = 200, headers=None):
        url = self.urls.get(url, url)
        if callable(body):
            self.routes[url] = body
            return
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body, headers or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not found")
        if callable(route):
            return route(request)
        status, body, headers = route
        return httpx.Response(status, content=body, headers=headers)

    def count(self, url: str) -> int:
        url = self.urls.get(url, url)
        return sum(1 for r in self.requests if str(r.url) == url)


@pytest.fixture
def sources() -> FakeSources:
    return FakeSources()


@pytest.fixture
def fetcher_factory(sources, tmp_path):
    """Build fetchers that talk to the fake sources without real delays"""
    scratch = tmp_path / "scratch"
    scratch.mkdir()

    def factory() -> SourceFetcher:
        return SourceFetcher(
            transport=httpx.MockTransport(sources.handler),
            max_retries=2,
            retry_delay=0,
            scratch_dir=str(scratch)
        )

    factory.scratch = scratch
    return factory


# ============================================================================
# Source payloads
# ============================================================================

@pytest.fixture
def deputes_payload():
    """nosdeputes.fr deputies: one sitting, one whose mandate ended, one former"""
    return {
        "deputes": [
            {"depute": {
                "id": 1,
                "slug": "anne-martin",
                "nom_de_famille": "Martin",
                "prenom": "Anne",
                "sexe": "F",
                "date_naissance": "1970-03-02",
                "lieu_naissance": "Lyon (Rhône)",
                "num_deptmt": "69",
                "nom_circo": "Rhône",
                "num_circo": 3,
                "mandat_debut": "2022-06-22",
                "groupe_sigle": "ABC",
                "groupe": {"organisme": "Groupe ABC", "fonction": "membre"},
                "profession": "Avocate",
                "emails": [{"email": "anne.martin@assemblee-nationale.fr"}],
                "sites_web": [{"site": "https://anne-martin.example"}],
                "twitter": "annemartin",
                "url_an": "https://www.assemblee-nationale.fr/deputes/fiche/OMC_PA1",
                "url_nosdeputes": "https://www.nosdeputes.fr/anne-martin"
            }},
            {"depute": {
                "id": 2,
                "slug": "paul-durand",
                "nom_de_famille": "Durand",
                "prenom": "Paul",
                "sexe": "H",
                "num_deptmt": "1",
                "nom_circo": "Ain",
                "num_circo": 1,
                "mandat_debut": "2022-06-22",
                "mandat_fin": "2024-06-09",
                "groupe_sigle": "XYZ",
                "groupe": {"organisme": "Groupe XYZ"}
            }},
            {"depute": {
                "id": 3,
                "slug": "ancien-depute",
                "nom_de_famille": "Ancien",
                "prenom": "Jacques",
                "sexe": "H",
                "mandat_debut": "2017-06-21",
                "mandat_fin": "2022-06-21",
                "groupe_sigle": "OLD"
            }},
        ]
    }


@pytest.fixture
def senateurs_payload():
    """Three senators, one of them without a matricule"""
    return [
        {
            "matricule": "19001A",
            "nom": "Bernard",
            "prenom": "Claire",
            "civilite": "Mme",
            "groupe": {"code": "ABC", "libelle": "Groupe ABC du Sénat"},
            "circonscription": {"code": "1", "libelle": "Ain"},
            "serie": "2",
            "categorieProfessionnelle": {"libelle": "Enseignante"},
            "urlAvatar": "/senimg/bernard_claire.jpg",
            "url": "/senateur/bernard_claire19001a.html"
        },
        {
            "matricule": "19002B",
            "nom": "Petit",
            "prenom": "Louis",
            "civilite": "M.",
            "circonscription": {"code": "75", "libelle": "Paris"},
            "serie": "1"
        },
        {
            "matricule": "",
            "nom": "Sans",
            "prenom": "Matricule"
        },
    ]


MAIRES_HEADER = (
    "Code du département;Libellé du département;Code de la commune;Libellé de la commune;"
    "Nom de l'élu;Prénom de l'élu;Code sexe;Date de naissance;"
    "Code de la catégorie socio-professionnelle;Libellé de la catégorie socio-professionnelle;"
    "Date de début du mandat;Date de début de la fonction"
)


@pytest.fixture
def maires_csv() -> bytes:
    """RNE export with BOM: three valid rows, one row without a name, one row with an extra field, one truncated row"""
    rows = [
        MAIRES_HEADER,
        "1;Ain;01001;L'Abergement-Clémenciat;DUPONT;Hélène;F;12/04/1961;74;Cadre;18/05/2020;26/05/2020",
        "75;Paris;75056;Paris;HIDALGO;Anne;F;19/06/1959;33;Cadre de la fonction publique;28/06/2020;03/07/2020",
        "13;Bouches-du-Rhône;13055;Marseille;PAYAN;Benoît;M;31/13/1978;;;21/12/2020;21/12/2020",
        "2;Aisne;02001;Abbécourt;;Jean;M;01/01/1950;;;15/03/2020;15/03/2020",
        "2;Aisne;02002;Achery;MOREAU;Luc;M;01/01/1950;;;15/03/2020;15/03/2020;surplus",
        "6;Alpes-Maritimes;06088;Nice;ESTROSI;Christian;M",
    ]
    return ("\ufeff" + "\n".join(rows) + "\n").encode("utf-8")


@pytest.fixture
def lois_payload():
    return {
        "sections": [
            {"section": {
                "id": 101,
                "id_dossier_institution": "plf2024",
                "titre": "Projet de loi de finances pour 2024",
                "min_date": "2023-09-27",
                "max_date": "2023-12-21",
                "nb_interventions": 2500,
                "url_institution": "https://www.assemblee-nationale.fr/dyn/16/dossiers/plf_2024",
                "url_nosdeputes": "https://www.nosdeputes.fr/16/dossier/101"
            }},
            {"section": {
                "id": 102,
                "titre": "Proposition de loi visant à protéger les haies",
                "min_date": "2024-05-15",
                "max_date": "2024-05-30",
                "nb_interventions": 12,
                "url_nosdeputes": "https://www.nosdeputes.fr/16/dossier/102"
            }},
        ]
    }


AN_ACTEUR_XML = """<?xml version="1.0" encoding="UTF-8"?>
<acteur xmlns="http://schemas.assemblee-nationale.fr/referentiel">
  <uid>PA3</uid>
  <etatCivil>
    <ident><civ>M.</civ><prenom>Jérôme</prenom><nom>Lefèvre</nom></ident>
  </etatCivil>
  <mandats>
    <mandat>
      <typeOrgane>ASSEMBLEE</typeOrgane>
      <legislature>17</legislature>
      <dateDebut>2024-07-08</dateDebut>
    </mandat>
  </mandats>
</acteur>
"""


def build_an_archive() -> bytes:
    """Assemblée nationale export: one group, two sitting deputies, one former, one broken file"""
    organe_gp = {"organe": {
        "uid": "PO800490",
        "codeType": "GP",
        "libelle": "Groupe ABC",
        "libelleAbrev": "ABC",
        "viMoDe": {"dateDebut": "2024-07-18", "dateFin": None},
        "positionPolitique": "Majoritaire",
        "couleurAssociee": "#FF0000"
    }}
    organe_an = {"organe": {"uid": "PO1", "codeType": "ASSEMBLEE", "libelle": "Assemblée nationale"}}
    sitting = {"acteur": {
        "uid": {"#text": "PA1"},
        "etatCivil": {
            "ident": {"civ": "Mme", "prenom": "Anne", "nom": "Martin"},
            "infoNaissance": {"dateNais": "1970-03-02", "villeNais": "Lyon"}
        },
        "profession": {"libelleCourant": "Avocate"},
        "mandats": {"mandat": [
            {
                "typeOrgane": "ASSEMBLEE",
                "legislature": "17",
                "dateDebut": "2024-07-08",
                "dateFin": None,
                "election": {"lieu": {"numDepartement": "69", "nomDepartement": "Rhône", "numCirco": "3"}}
            },
            {"typeOrgane": "GP", "dateDebut": "2024-07-18", "dateFin": None, "organes": {"organeRef": "PO800490"}},
        ]},
        "adresses": {"adresse": [
            {"type": "15", "typeLibelle": "Mèl", "valElec": "anne.martin@assemblee-nationale.fr"},
            {"type": "24", "typeLibelle": "Twitter", "valElec": "https://twitter.com/annemartin"},
        ]}
    }}
    former = {"acteur": {
        "uid": "PA2",
        "etatCivil": {"ident": {"civ": "M.", "prenom": "Ancien", "nom": "Depute"}},
        "mandats": {"mandat": [
            {"typeOrgane": "ASSEMBLEE", "legislature": "16", "dateDebut": "2022-06-22", "dateFin": "2024-06-09"}
        ]}
    }}

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("json/organe/PO800490.json", json.dumps(organe_gp))
        archive.writestr("json/organe/PO1.json", json.dumps(organe_an))
        archive.writestr("json/acteur/PA1.json", json.dumps(sitting))
        archive.writestr("json/acteur/PA2.json", json.dumps(former))
        archive.writestr("json/acteur/PA3.xml", AN_ACTEUR_XML)
        archive.writestr("json/acteur/broken.json", "{not json")
    return buffer.getvalue()


@pytest.fixture
def an_archive() -> bytes:
    return build_an_archive()


@pytest.fixture
def all_sources(sources, deputes_payload, senateurs_payload, maires_csv, lois_payload, an_archive, scrutins_archive):
    """Every dataset answering with its sample payload"""
    sources.add("deputes", deputes_payload)
    sources.add("senateurs", senateurs_payload)
    sources.add("maires", maires_csv)
    sources.add("lois", lois_payload)
    sources.add("deputes_an", an_archive)
    sources.add("scrutins", scrutins_archive)
    return sources


def build_scrutins_archive() -> bytes:
    """Votes export: two votes in their own files, one in a legacy envelope, one without outcome"""
    adopted = {"scrutin": {
        "uid": "VTANR5L17V1",
        "numero": "1",
        "legislature": "17",
        "dateScrutin": "2024-07-18",
        "titre": "l'élection du Président de l'Assemblée nationale",
        "sort": {"code": "adopté"},
        "objet": {"libelle": "Scrutin sur l'ensemble"},
        "syntheseVote": {
            "nombreVotants": "570",
            "suffragesExprimes": "550",
            "nbrSuffragesRequis": "276",
            "decompte": {"pour": "400", "contre": "150", "abstentions": "20", "nonVotants": "3"}
        }
    }}
    rejected = {"scrutin": {
        "uid": "VTANR5L17V2",
        "numero": "2",
        "legislature": "17",
        "dateScrutin": "2024-10-02",
        "titre": "la motion de rejet préalable",
        "sort": {"code": "rejeté"},
        "syntheseVote": {
            "nombreVotants": "300",
            "suffragesExprimes": "290",
            "decompte": {"pour": "120", "contre": "170", "abstentions": "10"}
        }
    }}
    legacy = {"scrutins": {"scrutin": [{
        "uid": "VTANR5L17V3",
        "numero": "3",
        "dateScrutin": "2024-10-03",
        "titre": "l'amendement n° 12",
        "sort": {"code": "adopté"},
        "syntheseVote": {
            "nombreVotants": "90",
            "suffragesExprimes": "88",
            "pour": {"nombreMembresGroupe": "60"},
            "contre": {"nombreMembresGroupe": "28"}
        }
    }]}}
    no_outcome = {"scrutin": {"uid": "VTANR5L17V4", "numero": "4", "titre": "l'article 2"}}

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("json/VTANR5L17V1.json", json.dumps(adopted))
        archive.writestr("json/VTANR5L17V2.json", json.dumps(rejected))
        archive.writestr("json/legacy.json", json.dumps(legacy))
        archive.writestr("json/VTANR5L17V4.json", json.dumps(no_outcome))
    return buffer.getvalue()


@pytest.fixture
def scrutins_archive() -> bytes:
    return build_scrutins_archive()
