"""
Service métier pour les stages terrain.
Gère le placement, la mise à jour, les transitions de phase, la prolongation,
le retrait et la clôture d'un stage.

Les règles (transitions autorisées, statut dérivé) vivent dans app.services.phase_rules ;
ce module se charge de lire/écrire student_internships et de lever des ValueError
que les routers traduisent en codes HTTP.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.agency import Agency, FieldPreceptor
from app.models.enums import InternshipPhase
from app.models.internship import StudentInternship
from app.models.student import Student
from app.schemas.internship import (
    CloseoutChecklist,
    CloseoutItem,
    ExtensionCreate,
    InternshipCreate,
    InternshipUpdate,
    WithdrawalCreate,
)
from app.schemas.phase import PhaseState
from app.services import compliance_service
from app.services.phase_rules import check_transition, derive_phase_state, is_extension_active

logger = logging.getLogger(__name__)

# Éléments de la liste de clôture : (clé, libellé, attribut du stage qui les coche)
CLOSEOUT_ITEMS = [
    ("final_eval_submitted", "Évaluation finale déposée", "phase_2_eval_completed"),
    ("preceptor_signoff", "Validation du précepteur reçue", "phase_2_eval_completed"),
    ("snhd_field_docs", "Dossier terrain SNHD déposé", "snhd_field_docs_submitted_at"),
    ("snhd_course_completion", "Attestation de fin de cours SNHD déposée", "snhd_course_completion_submitted_at"),
    ("written_exam", "Examen écrit réussi", "written_exam_passed"),
    ("psychomotor_exam", "Examen psychomoteur réussi", "psychomotor_exam_passed"),
    ("closeout_meeting", "Réunion de clôture tenue", "closeout_meeting_date"),
]

# Date de début renseignée automatiquement à l'entrée dans une phase
PHASE_START_FIELDS = {
    InternshipPhase.PHASE_1_MENTORSHIP: "phase_1_start_date",
    InternshipPhase.PHASE_2_EVALUATION: "phase_2_start_date",
}


def create_internship(db: Session, data: InternshipCreate) -> StudentInternship:
    """
    Crée le stage d'un étudiant en phase pre_internship.
    Lève ValueError si l'étudiant, l'agence ou le précepteur est introuvable,
    ou si l'étudiant a déjà un stage non retiré.
    """
    student = db.get(Student, data.student_id)
    if student is None:
        raise ValueError("Étudiant introuvable.")

    existing = db.execute(
        select(StudentInternship).where(
            StudentInternship.student_id == data.student_id,
            StudentInternship.is_withdrawn.is_(False),
        )
    ).scalar()
    if existing is not None:
        raise ValueError("Cet étudiant a déjà un stage actif.")

    agency_name = None
    if data.agency_id is not None:
        agency = db.get(Agency, data.agency_id)
        if agency is None:
            raise ValueError("Agence introuvable.")
        agency_name = agency.name

    if data.preceptor_id is not None and db.get(FieldPreceptor, data.preceptor_id) is None:
        raise ValueError("Précepteur introuvable.")

    internship = StudentInternship(
        **data.model_dump(),
        agency_name=agency_name,
        current_phase=InternshipPhase.PRE_INTERNSHIP.value,
    )
    if internship.cohort_id is None:
        internship.cohort_id = student.cohort_id

    db.add(internship)
    db.commit()
    db.refresh(internship)

    logger.info("Stage créé : %s (étudiant %s, agence %s)", internship.id, data.student_id, agency_name)
    return internship


def get_internship(db: Session, internship_id: uuid.UUID) -> Optional[StudentInternship]:
    """Retourne un stage par son ID, ou None s'il n'existe pas."""
    return db.get(StudentInternship, internship_id)


def _get_or_raise(db: Session, internship_id: uuid.UUID) -> StudentInternship:
    internship = db.get(StudentInternship, internship_id)
    if internship is None:
        raise ValueError("Stage introuvable.")
    return internship


def update_internship(db: Session, internship_id: uuid.UUID, data: InternshipUpdate) -> Optional[StudentInternship]:
    """
    Met à jour les champs fournis d'un stage.
    La phase n'est pas modifiable ici (voir advance_phase). Un changement d'agence
    met à jour le nom dénormalisé.
    """
    internship = db.get(StudentInternship, internship_id)
    if internship is None:
        return None

    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("agency_id") is not None and update_data["agency_id"] != internship.agency_id:
        agency = db.get(Agency, update_data["agency_id"])
        if agency is None:
            raise ValueError("Agence introuvable.")
        internship.agency_name = agency.name

    if update_data.get("preceptor_id") is not None and db.get(FieldPreceptor, update_data["preceptor_id"]) is None:
        raise ValueError("Précepteur introuvable.")

    for field, value in update_data.items():
        setattr(internship, field, value)

    db.commit()
    db.refresh(internship)
    return internship


def advance_phase(
    db: Session,
    internship_id: uuid.UUID,
    target: InternshipPhase,
    today: Optional[date] = None,
) -> StudentInternship:
    """
    Fait passer un stage à la phase suivante selon la table de transitions.
    Le passage à `completed` se fait uniquement par la clôture (complete_closeout).
    Lève ValueError avec les raisons bloquantes.
    """
    today = today or date.today()
    internship = _get_or_raise(db, internship_id)

    if target == InternshipPhase.COMPLETED:
        raise ValueError("Le passage à completed se fait par la clôture du stage.")

    reasons = check_transition(internship, target)
    if reasons:
        raise ValueError(" ".join(reasons))

    previous = internship.current_phase
    internship.current_phase = target.value
    start_field = PHASE_START_FIELDS.get(target)
    if start_field and getattr(internship, start_field) is None:
        setattr(internship, start_field, today)

    db.commit()
    db.refresh(internship)
    logger.info("Stage %s : %s → %s", internship.id, previous, target.value)
    return internship


def extend_internship(
    db: Session,
    internship_id: uuid.UUID,
    data: ExtensionCreate,
    today: Optional[date] = None,
) -> StudentInternship:
    """
    Prolonge un stage : la progression est suspendue jusqu'à l'évaluation de prolongation.
    Lève ValueError si le stage est retiré, terminé ou déjà en prolongation.
    """
    today = today or date.today()
    internship = _get_or_raise(db, internship_id)

    if internship.is_withdrawn:
        raise ValueError("Impossible de prolonger un stage retiré.")
    if internship.current_phase == InternshipPhase.COMPLETED.value:
        raise ValueError("Impossible de prolonger un stage terminé.")
    if is_extension_active(internship):
        raise ValueError("Une prolongation est déjà en cours.")

    internship.is_extended = True
    internship.extension_reason = data.reason
    internship.extension_date = today
    internship.extension_eval_date = data.extension_eval_date
    internship.extension_eval_completed = False

    db.commit()
    db.refresh(internship)
    logger.info("Stage %s prolongé (évaluation prévue le %s)", internship.id, data.extension_eval_date)
    return internship


def withdraw_internship(
    db: Session,
    internship_id: uuid.UUID,
    data: WithdrawalCreate,
    today: Optional[date] = None,
) -> StudentInternship:
    """Retire un stage (état terminal). Lève ValueError s'il est déjà retiré ou terminé."""
    internship = _get_or_raise(db, internship_id)

    if internship.is_withdrawn:
        raise ValueError("Ce stage est déjà retiré.")
    if internship.current_phase == InternshipPhase.COMPLETED.value:
        raise ValueError("Impossible de retirer un stage terminé.")

    internship.is_withdrawn = True
    internship.withdrawn_date = data.withdrawn_date or today or date.today()
    internship.withdrawal_reason = data.reason

    db.commit()
    db.refresh(internship)
    logger.info("Stage %s retiré le %s", internship.id, internship.withdrawn_date)
    return internship


def get_phase_state(db: Session, internship_id: uuid.UUID, today: Optional[date] = None) -> PhaseState:
    """
    État dérivé d'un stage, conformité de l'étudiant incluse.
    Lève ValueError si le stage est introuvable, DataIntegrityError si sa phase est inconnue.
    """
    today = today or date.today()
    internship = _get_or_raise(db, internship_id)
    readiness = compliance_service.get_student_readiness(db, internship.student_id, today, internship=internship)
    return derive_phase_state(internship, today, readiness)


def _closeout_items(internship: StudentInternship) -> List[CloseoutItem]:
    return [
        CloseoutItem(key=key, label=label, checked=bool(getattr(internship, field)))
        for key, label, field in CLOSEOUT_ITEMS
    ]


def get_closeout_checklist(db: Session, internship_id: uuid.UUID) -> CloseoutChecklist:
    """Liste de clôture calculée depuis le stage. Lève ValueError si introuvable."""
    internship = _get_or_raise(db, internship_id)
    items = _closeout_items(internship)
    return CloseoutChecklist(
        internship_id=internship.id,
        items=items,
        ready=all(item.checked for item in items),
    )


def complete_closeout(
    db: Session,
    internship_id: uuid.UUID,
    overrides: Optional[Dict[str, bool]] = None,
    completed_by: Optional[str] = None,
    today: Optional[date] = None,
) -> StudentInternship:
    """
    Finalise un stage : chaque élément de la liste doit être coché ou validé
    manuellement (overrides), puis la transition phase_2_evaluation → completed
    doit être autorisée.
    """
    overrides = overrides or {}
    today = today or date.today()
    internship = _get_or_raise(db, internship_id)

    unchecked = [
        item.label for item in _closeout_items(internship)
        if not item.checked and not overrides.get(item.key)
    ]
    if unchecked:
        raise ValueError("Clôture impossible, éléments non réalisés : " + ", ".join(unchecked))

    internship.closeout_completed = True
    reasons = check_transition(internship, InternshipPhase.COMPLETED)
    if reasons:
        internship.closeout_completed = False
        raise ValueError(" ".join(reasons))

    internship.current_phase = InternshipPhase.COMPLETED.value
    internship.completed_at = datetime.now()
    internship.completed_by = completed_by
    if internship.actual_end_date is None:
        internship.actual_end_date = today

    db.commit()
    db.refresh(internship)
    logger.info(
        "Stage %s clôturé par %s (validations manuelles : %s)",
        internship.id, completed_by, ", ".join(k for k, v in overrides.items() if v) or "aucune",
    )
    return internship
