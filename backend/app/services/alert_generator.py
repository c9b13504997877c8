"""
Générateur d'alertes cliniques (critical / warning / info).

Parcourt tous les stages actifs (ni terminés, ni retirés), applique le moteur de
phases et l'agrégateur de conformité, puis classe :

- critical : jalon en retard de plus de 7 jours ; non-éligibilité NREMT en phase 2 ;
             enregistrement incohérent ou référence introuvable (data_integrity)
- warning  : jalon en retard de 1 à 7 jours ; document expirant sous 14 jours ;
             clearance manquante en phase 1 ; document requis manquant hors phase 2
- info     : jalon à venir dans les 14 jours ; jalon de la phase courante non planifié

Les alertes sont recalculées à chaque appel (rien n'est accumulé) : au plus une
alerte par (étudiant, sujet) et par niveau. Même entrée → même sortie.
Un enregistrement défaillant est isolé et signalé ; le reste du lot continue.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from app.models.enums import (
    MILESTONE_ORDER,
    AlertSeverity,
    AlertType,
    InternshipPhase,
    MilestoneType,
    PhaseStatus,
)
from app.schemas.alert import Alert, AlertFeed, AlertStudent
from app.services.phase_rules import DataIntegrityError, build_milestones, derive_phase_state
from app.services.readiness import compute_readiness, doc_label

logger = logging.getLogger(__name__)

CRITICAL_OVERDUE_DAYS = 7
EXPIRING_ALERT_DAYS = 14
UPCOMING_WINDOW_DAYS = 14

EVAL_MILESTONES = {
    MilestoneType.PHASE_1_EVAL,
    MilestoneType.PHASE_2_EVAL,
    MilestoneType.EXTENSION_EVAL,
}

MILESTONE_LABELS = {
    MilestoneType.ORIENTATION: "Orientation",
    MilestoneType.PHASE_1_EVAL: "Évaluation phase 1",
    MilestoneType.PHASE_2_EVAL: "Évaluation phase 2",
    MilestoneType.EXTENSION_EVAL: "Évaluation de prolongation",
    MilestoneType.CLOSEOUT: "Réunion de clôture",
    MilestoneType.SNHD_SUBMISSION: "Dépôt SNHD",
    MilestoneType.NREMT_CLEARANCE: "Clearance NREMT",
    MilestoneType.INTERNSHIP_END: "Fin de stage",
    MilestoneType.DATA_INTEGRITY: "Intégrité des données",
}

INACTIVE_STATUSES = {PhaseStatus.COMPLETED, PhaseStatus.WITHDRAWN, PhaseStatus.NOT_STARTED}


def overdue_severity(days_overdue: int) -> AlertSeverity:
    """Escalade monotone : au-delà de 7 jours de retard, l'alerte devient critique."""
    if days_overdue > CRITICAL_OVERDUE_DAYS:
        return AlertSeverity.CRITICAL
    return AlertSeverity.WARNING


def generate_alerts(
    internships: Iterable,
    compliance: Mapping[object, List],
    today: date,
    students: Optional[Iterable] = None,
    preceptor_ids: Optional[set] = None,
) -> AlertFeed:
    """
    Calcule le flux d'alertes complet.

    compliance    : student_id → enregistrements de conformité de l'étudiant
    students      : si fourni, un stage dont l'étudiant est introuvable devient une alerte data_integrity
    preceptor_ids : si fourni, même contrôle pour le précepteur référencé
    """
    students_by_id = {s.id: s for s in students} if students is not None else None

    active = [i for i in internships if not i.is_withdrawn]
    active.sort(key=lambda i: str(i.id))

    active_count_by_student: Dict[object, int] = defaultdict(int)
    for internship in active:
        active_count_by_student[internship.student_id] += 1

    buckets: Dict[AlertSeverity, Dict[str, Alert]] = {severity: {} for severity in AlertSeverity}

    for internship in active:
        student = students_by_id.get(internship.student_id) if students_by_id is not None else None
        reference_issues = []
        if students_by_id is not None and student is None:
            reference_issues.append(f"étudiant {internship.student_id} introuvable")
        if (
            preceptor_ids is not None
            and internship.preceptor_id is not None
            and internship.preceptor_id not in preceptor_ids
        ):
            reference_issues.append(f"précepteur {internship.preceptor_id} introuvable")
        if active_count_by_student[internship.student_id] > 1:
            reference_issues.append("plusieurs stages actifs pour cet étudiant")

        try:
            alerts = internship_alerts(
                internship,
                compliance.get(internship.student_id, []),
                today,
                student=student,
                reference_issues=reference_issues,
            )
        except DataIntegrityError as exc:
            logger.warning("Stage %s à revoir : %s", internship.id, exc)
            alerts = [_integrity_alert(internship, student, [str(exc)])]
        except Exception as exc:
            logger.error("Stage %s ignoré, erreur inattendue : %s", internship.id, exc, exc_info=True)
            alerts = [_integrity_alert(internship, student, [f"erreur de calcul : {exc}"])]

        for alert in alerts:
            buckets[alert.severity].setdefault(alert.key, alert)

    feed = AlertFeed(
        critical=_sorted(buckets[AlertSeverity.CRITICAL].values(), today),
        warning=_sorted(buckets[AlertSeverity.WARNING].values(), today),
        info=_sorted(buckets[AlertSeverity.INFO].values(), today),
    )
    logger.info(
        "Alertes générées pour %d stages actifs : %d critiques, %d avertissements, %d infos",
        len(active), len(feed.critical), len(feed.warning), len(feed.info),
    )
    return feed


def internship_alerts(
    internship,
    records: List,
    today: date,
    student=None,
    reference_issues: Optional[List[str]] = None,
) -> List[Alert]:
    """Alertes d'un seul stage. Peut lever DataIntegrityError (phase inconnue)."""
    readiness = compute_readiness(records, today, internship)
    state = derive_phase_state(internship, today, readiness)

    issues = list(reference_issues or []) + state.integrity_issues
    if issues:
        return [_integrity_alert(internship, student, issues)]
    if state.status in INACTIVE_STATUSES:
        return []

    alerts = []
    for issue in state.blocking_issues:
        if issue.due_date is None or issue.days_overdue <= 0:
            continue
        alert_type = AlertType.OVERDUE_EVAL if issue.milestone_type in EVAL_MILESTONES else AlertType.OVERDUE_MILESTONE
        label = MILESTONE_LABELS[issue.milestone_type]
        alerts.append(
            _milestone_alert(
                internship, student, alert_type, overdue_severity(issue.days_overdue), issue.milestone_type,
                issue.due_date,
                message=f"{label} en retard",
                details=f"Prévu le {issue.due_date.isoformat()} ({issue.days_overdue} j de retard)",
            )
        )

    if state.phase == InternshipPhase.PHASE_2_EVALUATION and not readiness.nremt_eligible:
        missing = [doc_label(d) for d in readiness.missing_docs] + readiness.missing_clearances
        alerts.append(
            _milestone_alert(
                internship, student, AlertType.NREMT_NOT_CLEARED, AlertSeverity.CRITICAL,
                MilestoneType.NREMT_CLEARANCE, internship.course_completion_date,
                message="Non éligible NREMT",
                details="Manquant : " + ", ".join(missing),
            )
        )

    if state.phase == InternshipPhase.PHASE_1_MENTORSHIP and readiness.missing_clearances:
        alerts.append(
            _alert(
                internship, student, AlertType.MISSING_CLEARANCE, AlertSeverity.WARNING, "clearance",
                message="Clearances de stage manquantes",
                details=", ".join(readiness.missing_clearances),
                link_type="internship", link_id=internship.id,
            )
        )

    if state.phase != InternshipPhase.PHASE_2_EVALUATION and readiness.missing_docs:
        alerts.append(
            _alert(
                internship, student, AlertType.MISSING_COMPLIANCE_DOC, AlertSeverity.WARNING, "compliance_docs",
                message="Documents de conformité manquants",
                details=", ".join(doc_label(d) for d in readiness.missing_docs),
                link_type="student", link_id=internship.student_id,
            )
        )

    for expiring in readiness.expiring_docs:
        days_left = (expiring.expiration_date - today).days
        if days_left > EXPIRING_ALERT_DAYS:
            continue
        alerts.append(
            _alert(
                internship, student, AlertType.EXPIRING_COMPLIANCE_DOC, AlertSeverity.WARNING,
                f"doc:{expiring.doc_type.value}",
                message=f"{doc_label(expiring.doc_type)} expire bientôt",
                details=f"Expire le {expiring.expiration_date.isoformat()} ({days_left} j)",
                due_date=expiring.expiration_date,
                link_type="student", link_id=internship.student_id,
            )
        )

    for milestone in build_milestones(internship, state.phase):
        if milestone.done or milestone.due_date is None:
            continue
        days_until = (milestone.due_date - today).days
        if 0 <= days_until <= UPCOMING_WINDOW_DAYS:
            alerts.append(
                _milestone_alert(
                    internship, student, AlertType.UPCOMING_MILESTONE, AlertSeverity.INFO, milestone.type,
                    milestone.due_date,
                    message=f"{MILESTONE_LABELS[milestone.type]} à venir",
                    details=f"Prévu le {milestone.due_date.isoformat()} (dans {days_until} j)",
                )
            )

    for milestone_type in state.data_quality_issues:
        alerts.append(
            _milestone_alert(
                internship, student, AlertType.UNSCHEDULED_MILESTONE, AlertSeverity.INFO, milestone_type, None,
                message=f"Date non planifiée : {MILESTONE_LABELS[milestone_type]}",
                details="Aucune date enregistrée pour la phase en cours",
            )
        )

    return alerts


def _student_ref(internship, student) -> AlertStudent:
    if student is None:
        return AlertStudent(id=internship.student_id)
    return AlertStudent(id=student.id, first_name=student.first_name or "", last_name=student.last_name or "")


def _alert(
    internship, student, alert_type, severity, subject, message, details="",
    milestone_type=None, due_date=None, link_type="internship", link_id=None,
) -> Alert:
    return Alert(
        key=f"{internship.student_id}:{subject}:{severity.value}",
        type=alert_type,
        severity=severity,
        student=_student_ref(internship, student),
        subject=subject,
        milestone_type=milestone_type,
        due_date=due_date,
        message=message,
        details=details,
        link_type=link_type,
        link_id=link_id if link_id is not None else internship.id,
    )


def _milestone_alert(internship, student, alert_type, severity, milestone_type, due_date, message, details) -> Alert:
    return _alert(
        internship, student, alert_type, severity, milestone_type.value,
        message=message, details=details, milestone_type=milestone_type, due_date=due_date,
    )


def _integrity_alert(internship, student, issues: List[str]) -> Alert:
    return _alert(
        internship, student, AlertType.DATA_INTEGRITY, AlertSeverity.CRITICAL,
        MilestoneType.DATA_INTEGRITY.value,
        message="Enregistrement de stage à revoir",
        details="; ".join(issues),
        milestone_type=MilestoneType.DATA_INTEGRITY,
    )


def _sorted(alerts: Iterable[Alert], today: date) -> List[Alert]:
    """Retard d'abord, puis date croissante, puis nom de l'étudiant (ordre déterministe)."""
    def sort_key(alert: Alert):
        overdue = alert.due_date is not None and alert.due_date < today
        order = MILESTONE_ORDER.index(alert.milestone_type) if alert.milestone_type else len(MILESTONE_ORDER)
        return (
            0 if overdue else 1,
            alert.due_date or date.max,
            alert.student.last_name.lower(),
            alert.student.first_name.lower(),
            order,
            str(alert.student.id),
            alert.subject,
        )

    return sorted(alerts, key=sort_key)
