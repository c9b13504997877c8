"""
Projection « vue d'ensemble clinique » : une ligne par étudiant, prête pour le dashboard.

Fonctions pures. Une ligne défaillante n'interrompt jamais le calcul : elle est
dégradée en statut `unknown` (needs_review) et les autres lignes sont produites.
"""

import logging
from collections import Counter, defaultdict
from datetime import date
from typing import Iterable, List, Mapping, Optional

from app.models.enums import ClinicalStatus, PhaseStatus
from app.schemas.alert import AlertFeed
from app.schemas.overview import StudentOverviewRow
from app.services.alert_generator import generate_alerts
from app.services.phase_rules import DataIntegrityError, derive_phase_state
from app.services.readiness import compute_readiness

logger = logging.getLogger(__name__)

# Table de correspondance phase → badge. Doit suivre InternshipPhase :
# une phase absente d'ici retombe sur not_started (migrations partielles).
CLINICAL_STATUS_BY_PHASE = {
    "pre_internship": ClinicalStatus.PREPARING,
    "phase_1_mentorship": ClinicalStatus.ACTIVE_INTERNSHIP,
    "phase_2_evaluation": ClinicalStatus.ACTIVE_INTERNSHIP,
    "completed": ClinicalStatus.COMPLETED,
}

# Statuts dérivés qui priment sur la phase
CLINICAL_STATUS_BY_STATUS = {
    PhaseStatus.NOT_STARTED: ClinicalStatus.NOT_STARTED,
    PhaseStatus.COMPLETED: ClinicalStatus.COMPLETED,
    PhaseStatus.WITHDRAWN: ClinicalStatus.NOT_STARTED,
}

# Programmes dont le stage en cours s'affiche en stages cliniques
CLINICALS_PROGRAMS = {"EMT", "AEMT"}


def clinical_status_for(
    raw_phase: Optional[str],
    status: Optional[PhaseStatus] = None,
    program: Optional[str] = None,
) -> ClinicalStatus:
    if status in CLINICAL_STATUS_BY_STATUS:
        return CLINICAL_STATUS_BY_STATUS[status]
    clinical_status = CLINICAL_STATUS_BY_PHASE.get(raw_phase, ClinicalStatus.NOT_STARTED)
    if clinical_status == ClinicalStatus.ACTIVE_INTERNSHIP and program in CLINICALS_PROGRAMS:
        return ClinicalStatus.ACTIVE_CLINICALS
    return clinical_status


def select_internship(internships: List):
    """
    Stage affiché pour un étudiant : le stage non retiré, sinon le dernier retrait.
    Retourne (stage, plusieurs_actifs).
    """
    active = sorted((i for i in internships if not i.is_withdrawn), key=lambda i: str(i.id))
    if active:
        return active[0], len(active) > 1
    withdrawn = sorted(internships, key=lambda i: (i.withdrawn_date or date.min, str(i.id)))
    return (withdrawn[-1] if withdrawn else None), False


def build_overview(
    students: Iterable,
    internships: Iterable,
    compliance: Mapping[object, List],
    today: date,
    preceptor_ids: Optional[set] = None,
    alerts: Optional[AlertFeed] = None,
) -> List[StudentOverviewRow]:
    """
    Construit les lignes de la vue d'ensemble.
    `alerts` peut être fourni pour éviter de recalculer le flux (compteurs par étudiant).
    """
    students = list(students)
    internships = list(internships)
    if alerts is None:
        alerts = generate_alerts(internships, compliance, today, students=students, preceptor_ids=preceptor_ids)

    counts = {
        "critical": Counter(a.student.id for a in alerts.critical),
        "warning": Counter(a.student.id for a in alerts.warning),
        "info": Counter(a.student.id for a in alerts.info),
    }

    internships_by_student = defaultdict(list)
    for internship in internships:
        internships_by_student[internship.student_id].append(internship)

    rows = []
    for student in sorted(students, key=lambda s: ((s.last_name or "").lower(), (s.first_name or "").lower(), str(s.id))):
        row = _student_row(
            student,
            internships_by_student.get(student.id, []),
            compliance.get(student.id, []),
            today,
            preceptor_ids,
        )
        row.critical_count = counts["critical"][student.id]
        row.warning_count = counts["warning"][student.id]
        row.info_count = counts["info"][student.id]
        rows.append(row)

    logger.info(
        "Vue d'ensemble : %d étudiants, %d lignes à revoir",
        len(rows), sum(1 for r in rows if r.needs_review),
    )
    return rows


def _student_row(student, internships: List, records: List, today: date, preceptor_ids) -> StudentOverviewRow:
    internship, several_active = select_internship(internships)

    row = StudentOverviewRow(
        student_id=student.id,
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email,
        program=student.program,
        cohort_id=student.cohort_id,
        status=PhaseStatus.NOT_STARTED,
        clinical_status=ClinicalStatus.NOT_STARTED,
    )

    if internship is None:
        readiness = compute_readiness(records, today)
        row.missing_doc_count = len(readiness.missing_docs)
        row.expiring_doc_count = len(readiness.expiring_docs)
        return row

    row.internship_id = internship.id
    row.current_phase = internship.current_phase
    row.cleared_for_nremt = bool(internship.cleared_for_nremt)

    try:
        readiness = compute_readiness(records, today, internship)
        row.nremt_eligible = readiness.nremt_eligible
        row.missing_doc_count = len(readiness.missing_docs)
        row.expiring_doc_count = len(readiness.expiring_docs)
        state = derive_phase_state(internship, today, readiness)
    except DataIntegrityError as exc:
        logger.warning("Étudiant %s : ligne dégradée (%s)", student.id, exc)
        return _degraded(row)
    except Exception as exc:
        logger.error("Étudiant %s : ligne dégradée, erreur inattendue : %s", student.id, exc, exc_info=True)
        return _degraded(row)

    unresolved_preceptor = (
        preceptor_ids is not None
        and internship.preceptor_id is not None
        and internship.preceptor_id not in preceptor_ids
    )
    if state.needs_review or several_active or unresolved_preceptor:
        return _degraded(row)

    row.status = state.status
    row.current_phase = state.phase.value
    row.clinical_status = clinical_status_for(state.phase.value, state.status, student.program)
    row.next_due_date = state.next_due_date
    row.next_due_type = state.next_due_type
    return row


def _degraded(row: StudentOverviewRow) -> StudentOverviewRow:
    row.status = PhaseStatus.UNKNOWN
    row.needs_review = True
    row.clinical_status = clinical_status_for(row.current_phase, program=row.program)
    return row
