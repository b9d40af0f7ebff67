from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class SyncStatus(str, enum.Enum):
    """Sync job status"""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Chambre(str, enum.Enum):
    """Parliamentary chamber a political group belongs to"""
    ASSEMBLEE = "ASSEMBLEE"
    SENAT = "SENAT"


class TypeLoi(str, enum.Enum):
    """Kind of legislative file"""
    PROJET_LOI = "PROJET_LOI"
    PROPOSITION_LOI = "PROPOSITION_LOI"
    PROJET_LOI_FINANCES = "PROJET_LOI_FINANCES"
    PROJET_LOI_FINANCEMENT_SECU = "PROJET_LOI_FINANCEMENT_SECU"
    PROJET_LOI_REGLEMENT = "PROJET_LOI_REGLEMENT"
    PROJET_LOI_ORGANIQUE = "PROJET_LOI_ORGANIQUE"
    PROPOSITION_LOI_ORGANIQUE = "PROPOSITION_LOI_ORGANIQUE"
    PROPOSITION_RESOLUTION = "PROPOSITION_RESOLUTION"


class StatutLoi(str, enum.Enum):
    """Progress of a legislative file"""
    DEPOSE = "DEPOSE"
    EN_COMMISSION = "EN_COMMISSION"
    EN_SEANCE = "EN_SEANCE"
    CADUQUE = "CADUQUE"


class ResultatScrutin(str, enum.Enum):
    """Outcome of a public vote"""
    ADOPTE = "ADOPTE"
    REJETE = "REJETE"
