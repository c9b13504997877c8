"""
Moteur de règles des phases de stage.

Fonctions pures : elles lisent un enregistrement student_internships (objet ORM ou
tout objet exposant les mêmes attributs) et une date, et ne font aucune I/O.

Règles de statut, dans l'ordre :
1. completed   si current_phase == completed
2. withdrawn   si le stage est retiré
3. not_started si aucune date de placement
4. extended    si prolongation sans évaluation de prolongation complétée
5. at_risk     si un jalon daté des phases atteintes est dépassé sans être complété
6. on_track    sinon

Un jalon sans date n'est jamais « en retard » : il est signalé à part
(data_quality_issues). Une phase hors énumération lève DataIntegrityError.
"""

from collections import namedtuple
from datetime import date, timedelta
from typing import List, Optional

from app.models.enums import (
    MILESTONE_ORDER,
    PHASE_ORDER,
    InternshipPhase,
    MilestoneType,
    PhaseStatus,
)
from app.schemas.compliance import Readiness
from app.schemas.phase import BlockingIssue, PhaseState

# Les documents SNHD sont attendus dans les 30 jours suivant la fin du stage
SNHD_SUBMISSION_DAYS_AFTER_END = 30

PHASE_TRANSITIONS = {
    InternshipPhase.PRE_INTERNSHIP: {InternshipPhase.PHASE_1_MENTORSHIP},
    InternshipPhase.PHASE_1_MENTORSHIP: {InternshipPhase.PHASE_2_EVALUATION},
    InternshipPhase.PHASE_2_EVALUATION: {InternshipPhase.COMPLETED},
    InternshipPhase.COMPLETED: set(),
}

# Conditions d'entrée dans une phase : (attribut, libellé si absent)
ENTRY_REQUIREMENTS = {
    InternshipPhase.PHASE_1_MENTORSHIP: [
        ("placement_date", "date de placement manquante"),
    ],
    InternshipPhase.PHASE_2_EVALUATION: [
        ("phase_1_eval_completed", "évaluation de phase 1 non complétée"),
    ],
    InternshipPhase.COMPLETED: [
        ("phase_2_eval_completed", "évaluation de phase 2 non complétée"),
        ("closeout_completed", "réunion de clôture non complétée"),
    ],
}

# (date antérieure, date postérieure) : la seconde ne peut pas précéder la première
DATE_ORDERING = [
    ("phase_1_start_date", "phase_1_end_date"),
    ("phase_1_end_date", "phase_2_start_date"),
    ("phase_2_start_date", "phase_2_end_date"),
    ("internship_start_date", "expected_end_date"),
    ("internship_start_date", "actual_end_date"),
]

# Jalons dont l'absence de date planifiée est signalée en qualité de données
SCHEDULABLE_MILESTONES = {
    MilestoneType.ORIENTATION,
    MilestoneType.PHASE_1_EVAL,
    MilestoneType.PHASE_2_EVAL,
    MilestoneType.EXTENSION_EVAL,
}

EVAL_MILESTONE_BY_PHASE = {
    InternshipPhase.PHASE_1_MENTORSHIP: MilestoneType.PHASE_1_EVAL,
    InternshipPhase.PHASE_2_EVALUATION: MilestoneType.PHASE_2_EVAL,
}

Milestone = namedtuple("Milestone", ["type", "phase", "due_date", "done"])


class DataIntegrityError(Exception):
    """Valeur hors énumération : l'enregistrement doit être revu, jamais deviné."""

    def __init__(self, internship_id, message: str):
        super().__init__(message)
        self.internship_id = internship_id


def parse_phase(internship) -> InternshipPhase:
    """Retourne la phase enregistrée, pre_internship si absente, ou lève DataIntegrityError."""
    raw = internship.current_phase or InternshipPhase.PRE_INTERNSHIP.value
    try:
        return InternshipPhase(raw)
    except ValueError:
        raise DataIntegrityError(internship.id, f"Phase inconnue : {raw!r}")


def is_extension_active(internship) -> bool:
    return bool(internship.is_extended) and not internship.extension_eval_completed


def effective_end_date(internship) -> Optional[date]:
    """Pendant une prolongation en cours, la date d'évaluation de prolongation remplace la fin prévue."""
    if is_extension_active(internship) and internship.extension_eval_date:
        return internship.extension_eval_date
    return internship.expected_end_date


def due_rank_key(due_date: Optional[date], milestone_type: MilestoneType, today: date):
    """
    Clé de tri des échéances : jalons en retard d'abord (quelle que soit la date
    des suivants), puis date croissante, puis ordre des phases.
    """
    overdue = due_date is not None and due_date < today
    return (
        0 if overdue else 1,
        due_date or date.max,
        MILESTONE_ORDER.index(milestone_type),
    )


def build_milestones(internship, phase: InternshipPhase) -> List[Milestone]:
    """Liste des jalons du stage avec leur phase de rattachement, leur date et leur état."""
    end = effective_end_date(internship)
    snhd_due = end + timedelta(days=SNHD_SUBMISSION_DAYS_AFTER_END) if end else None

    milestones = [
        Milestone(
            MilestoneType.ORIENTATION, InternshipPhase.PRE_INTERNSHIP,
            internship.orientation_date, bool(internship.orientation_completed),
        ),
        Milestone(
            MilestoneType.PHASE_1_EVAL, InternshipPhase.PHASE_1_MENTORSHIP,
            internship.phase_1_eval_scheduled, bool(internship.phase_1_eval_completed),
        ),
        Milestone(
            MilestoneType.PHASE_2_EVAL, InternshipPhase.PHASE_2_EVALUATION,
            internship.phase_2_eval_scheduled, bool(internship.phase_2_eval_completed),
        ),
        Milestone(
            MilestoneType.CLOSEOUT, InternshipPhase.PHASE_2_EVALUATION,
            internship.closeout_meeting_date, bool(internship.closeout_completed),
        ),
        Milestone(
            MilestoneType.SNHD_SUBMISSION, InternshipPhase.PHASE_2_EVALUATION,
            snhd_due,
            bool(internship.snhd_field_docs_submitted_at and internship.snhd_course_completion_submitted_at),
        ),
        Milestone(
            MilestoneType.NREMT_CLEARANCE, InternshipPhase.PHASE_2_EVALUATION,
            internship.course_completion_date, bool(internship.cleared_for_nremt),
        ),
    ]

    if internship.is_extended:
        # Pendant la prolongation, l'évaluation de prolongation remplace celle de la phase courante
        if is_extension_active(internship):
            suspended = EVAL_MILESTONE_BY_PHASE.get(phase)
            milestones = [m for m in milestones if m.type != suspended]
        milestones.append(
            Milestone(
                MilestoneType.EXTENSION_EVAL, phase,
                internship.extension_eval_date, bool(internship.extension_eval_completed),
            )
        )

    return milestones


def find_integrity_issues(internship, phase: InternshipPhase) -> List[str]:
    """
    Incohérences à faire revoir : dates dans le désordre, ou phase enregistrée
    dont les conditions d'entrée (cumulées) ne sont pas remplies.
    """
    issues = []

    for earlier_field, later_field in DATE_ORDERING:
        earlier = getattr(internship, earlier_field)
        later = getattr(internship, later_field)
        if earlier and later and later < earlier:
            issues.append(f"{later_field} ({later}) antérieure à {earlier_field} ({earlier})")

    reached = PHASE_ORDER[: PHASE_ORDER.index(phase) + 1]
    for reached_phase in reached:
        for field, label in ENTRY_REQUIREMENTS.get(reached_phase, []):
            if not getattr(internship, field):
                issues.append(f"phase {phase.value} enregistrée mais {label}")

    return issues


def check_transition(internship, target: InternshipPhase) -> List[str]:
    """
    Vérifie qu'un stage peut passer à la phase cible.
    Retourne la liste des raisons bloquantes (vide = transition autorisée).
    """
    current = parse_phase(internship)

    if internship.is_withdrawn:
        return ["Le stage est retiré : aucune transition possible."]
    if target not in PHASE_TRANSITIONS[current]:
        return [f"Transition {current.value} → {target.value} non autorisée."]

    reasons = []
    if is_extension_active(internship):
        reasons.append("Prolongation en cours : l'évaluation de prolongation n'est pas complétée.")
    for field, label in ENTRY_REQUIREMENTS.get(target, []):
        if not getattr(internship, field):
            reasons.append(label[0].upper() + label[1:] + ".")
    return reasons


def derive_phase_state(internship, today: date, readiness: Optional[Readiness] = None) -> PhaseState:
    """
    Calcule l'état dérivé d'un stage à la date `today`.

    readiness (optionnel) : agrégat de conformité de l'étudiant ; en phase 2,
    une non-éligibilité NREMT devient un problème bloquant.
    Lève DataIntegrityError si current_phase est hors énumération.
    """
    phase = parse_phase(internship)
    integrity_issues = find_integrity_issues(internship, phase)
    end = effective_end_date(internship)

    if phase == InternshipPhase.COMPLETED:
        return PhaseState(
            phase=phase, status=PhaseStatus.COMPLETED,
            integrity_issues=integrity_issues, effective_end_date=end,
        )
    if internship.is_withdrawn:
        return PhaseState(
            phase=phase, status=PhaseStatus.WITHDRAWN,
            integrity_issues=integrity_issues, effective_end_date=end,
        )

    milestones = build_milestones(internship, phase)
    reached = set(PHASE_ORDER[: PHASE_ORDER.index(phase) + 1])

    blocking_issues = []
    data_quality_issues = []
    for m in milestones:
        if m.done:
            continue
        if m.due_date is None:
            if m.phase == phase and m.type in SCHEDULABLE_MILESTONES:
                data_quality_issues.append(m.type)
            continue
        if m.phase in reached and m.due_date < today:
            blocking_issues.append(
                BlockingIssue(
                    milestone_type=m.type,
                    due_date=m.due_date,
                    days_overdue=(today - m.due_date).days,
                    reason=f"{m.type.value} prévu le {m.due_date.isoformat()} non complété",
                )
            )

    if end and end < today:
        blocking_issues.append(
            BlockingIssue(
                milestone_type=MilestoneType.INTERNSHIP_END,
                due_date=end,
                days_overdue=(today - end).days,
                reason=f"fin de stage prévue le {end.isoformat()} dépassée",
            )
        )

    if (
        readiness is not None
        and phase == InternshipPhase.PHASE_2_EVALUATION
        and not readiness.nremt_eligible
        and not internship.cleared_for_nremt
        and not any(i.milestone_type == MilestoneType.NREMT_CLEARANCE for i in blocking_issues)
    ):
        due = internship.course_completion_date
        blocking_issues.append(
            BlockingIssue(
                milestone_type=MilestoneType.NREMT_CLEARANCE,
                due_date=due,
                days_overdue=max((today - due).days, 0) if due else 0,
                reason="non éligible NREMT : documents ou clearances manquants",
            )
        )

    blocking_issues.sort(key=lambda i: due_rank_key(i.due_date, i.milestone_type, today))

    pending = sorted(
        (m for m in milestones if not m.done and m.due_date is not None),
        key=lambda m: due_rank_key(m.due_date, m.type, today),
    )
    next_due = pending[0] if pending else None

    if not internship.placement_date:
        status = PhaseStatus.NOT_STARTED
    elif is_extension_active(internship):
        status = PhaseStatus.EXTENDED
    elif any(i.days_overdue > 0 for i in blocking_issues):
        status = PhaseStatus.AT_RISK
    else:
        status = PhaseStatus.ON_TRACK

    return PhaseState(
        phase=phase,
        status=status,
        blocking_issues=blocking_issues,
        next_due_date=next_due.due_date if next_due else None,
        next_due_type=next_due.type if next_due else None,
        data_quality_issues=data_quality_issues,
        integrity_issues=integrity_issues,
        effective_end_date=end,
    )
