"""
Énumérations fermées du domaine clinique.

Les colonnes SQLAlchemy stockent la valeur texte (`.value`) : les migrations
successives ont montré que le schéma bouge souvent, alors que ces tables de
correspondance restent l'unique endroit à mettre à jour.
"""

from collections import namedtuple
from enum import Enum


class InternshipPhase(str, Enum):
    """Phase enregistrée dans student_internships.current_phase."""

    PRE_INTERNSHIP = "pre_internship"
    PHASE_1_MENTORSHIP = "phase_1_mentorship"
    PHASE_2_EVALUATION = "phase_2_evaluation"
    COMPLETED = "completed"


# Ordre du cycle de vie (les transitions sont monotones)
PHASE_ORDER = [
    InternshipPhase.PRE_INTERNSHIP,
    InternshipPhase.PHASE_1_MENTORSHIP,
    InternshipPhase.PHASE_2_EVALUATION,
    InternshipPhase.COMPLETED,
]


class PhaseStatus(str, Enum):
    """Statut dérivé par le moteur de règles (jamais saisi à la main)."""

    NOT_STARTED = "not_started"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    EXTENDED = "extended"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"
    UNKNOWN = "unknown"  # enregistrement à revoir (intégrité)


class MilestoneType(str, Enum):
    ORIENTATION = "orientation"
    PHASE_1_EVAL = "phase_1_eval"
    PHASE_2_EVAL = "phase_2_eval"
    EXTENSION_EVAL = "extension_eval"
    CLOSEOUT = "closeout"
    SNHD_SUBMISSION = "snhd_submission"
    NREMT_CLEARANCE = "nremt_clearance"
    INTERNSHIP_END = "internship_end"
    DATA_INTEGRITY = "data_integrity"


# Ordre de départage à date égale (ordre des phases)
MILESTONE_ORDER = [
    MilestoneType.ORIENTATION,
    MilestoneType.PHASE_1_EVAL,
    MilestoneType.PHASE_2_EVAL,
    MilestoneType.EXTENSION_EVAL,
    MilestoneType.CLOSEOUT,
    MilestoneType.SNHD_SUBMISSION,
    MilestoneType.NREMT_CLEARANCE,
    MilestoneType.INTERNSHIP_END,
    MilestoneType.DATA_INTEGRITY,
]


class DocType(str, Enum):
    """Documents de conformité suivis par étudiant."""

    MMR = "mmr"
    VZV = "vzv"
    HEPB = "hepb"
    TDAP = "tdap"
    COVID = "covid"
    TB = "tb"
    PHYSICAL = "physical"
    INSURANCE = "insurance"
    BLS = "bls"
    FLU = "flu"
    HOSPITAL_ORIENT = "hospital_orient"
    BACKGROUND = "background"
    DRUG_TEST = "drug_test"


DocTypeRule = namedtuple("DocTypeRule", ["label", "is_required"])

DOC_TYPE_RULES = {
    DocType.MMR: DocTypeRule("MMR Vaccine", True),
    DocType.VZV: DocTypeRule("Varicella", True),
    DocType.HEPB: DocTypeRule("Hepatitis B", True),
    DocType.TDAP: DocTypeRule("Tdap Vaccine", True),
    DocType.COVID: DocTypeRule("COVID Vaccine", False),
    DocType.TB: DocTypeRule("TB Test", True),
    DocType.PHYSICAL: DocTypeRule("Physical Exam", True),
    DocType.INSURANCE: DocTypeRule("Health Insurance", True),
    DocType.BLS: DocTypeRule("BLS Card", True),
    DocType.FLU: DocTypeRule("Flu Vaccine", False),
    DocType.HOSPITAL_ORIENT: DocTypeRule("Hospital Orientation", False),
    DocType.BACKGROUND: DocTypeRule("Background Check", True),
    DocType.DRUG_TEST: DocTypeRule("Drug Test", True),
}

REQUIRED_DOC_TYPES = [doc for doc in DocType if DOC_TYPE_RULES[doc].is_required]

# Ancien schéma « large » (une colonne booléenne par document) :
# DocType → (colonne complétée, colonne d'expiration ou None)
LEGACY_COMPLIANCE_COLUMNS = {
    DocType.MMR: ("mmr_complete", None),
    DocType.VZV: ("vzv_complete", None),
    DocType.HEPB: ("hepb_complete", None),
    DocType.TDAP: ("tdap_complete", "tdap_expiration"),
    DocType.COVID: ("covid_complete", None),
    DocType.TB: ("tb_complete", "tb_expiration"),
    DocType.PHYSICAL: ("physical_complete", "physical_expiration"),
    DocType.INSURANCE: ("insurance_complete", "insurance_expiration"),
    DocType.BLS: ("bls_complete", "bls_expiration"),
    DocType.FLU: ("flu_complete", "flu_expiration"),
    DocType.HOSPITAL_ORIENT: ("hospital_orient_complete", None),
    DocType.BACKGROUND: ("background_complete", None),
    DocType.DRUG_TEST: ("drug_test_complete", None),
}


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertType(str, Enum):
    OVERDUE_MILESTONE = "overdue_milestone"
    OVERDUE_EVAL = "overdue_eval"
    NREMT_NOT_CLEARED = "nremt_not_cleared"
    MISSING_CLEARANCE = "missing_clearance"
    MISSING_COMPLIANCE_DOC = "missing_compliance_doc"
    EXPIRING_COMPLIANCE_DOC = "expiring_compliance_doc"
    UPCOMING_MILESTONE = "upcoming_milestone"
    UNSCHEDULED_MILESTONE = "unscheduled_milestone"
    DATA_INTEGRITY = "data_integrity"


class ClinicalStatus(str, Enum):
    """Badge affiché dans la vue d'ensemble clinique."""

    ACTIVE_INTERNSHIP = "active_internship"
    ACTIVE_CLINICALS = "active_clinicals"  # stage en cours, programmes EMT/AEMT
    PREPARING = "preparing"
    COMPLETED = "completed"
    NOT_STARTED = "not_started"


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    LEAD_INSTRUCTOR = "lead_instructor"
    INSTRUCTOR = "instructor"
    GUEST = "guest"
