"""
Service de lecture de la vue d'ensemble clinique et du flux d'alertes.

Charge un instantané cohérent de la base (étudiants, stages, documents, précepteurs)
puis délègue le calcul aux fonctions pures overview.build_overview et
alert_generator.generate_alerts. Rien n'est mis en cache : chaque lecture recalcule.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.agency import FieldPreceptor
from app.models.compliance import ComplianceRecord
from app.models.internship import StudentInternship
from app.models.student import Student
from app.schemas.alert import AlertFeed
from app.schemas.overview import ClinicalOverviewResponse
from app.services.alert_generator import generate_alerts
from app.services.overview import build_overview

logger = logging.getLogger(__name__)


def _load_snapshot(db: Session):
    """
    Retourne (étudiants actifs, stages des étudiants non archivés, documents par étudiant,
    IDs des précepteurs actifs).
    Un stage dont l'étudiant n'existe pas du tout est conservé : il devient une alerte data_integrity.
    """
    students = db.execute(select(Student)).scalars().all()
    internships = db.execute(select(StudentInternship)).scalars().all()
    records = db.execute(select(ComplianceRecord)).scalars().all()
    preceptor_ids = set(
        db.execute(select(FieldPreceptor.id).where(FieldPreceptor.is_active.is_not(False))).scalars().all()
    )

    archived_ids = {s.id for s in students if s.status == "archived"}
    active_students = [s for s in students if s.status != "archived"]
    internships = [i for i in internships if i.student_id not in archived_ids]

    compliance = defaultdict(list)
    for record in records:
        compliance[record.student_id].append(record)

    return active_students, internships, compliance, preceptor_ids


def get_alert_feed(db: Session, today: Optional[date] = None) -> AlertFeed:
    """Flux d'alertes (critical / warning / info) à la date `today`."""
    today = today or date.today()
    students, internships, compliance, preceptor_ids = _load_snapshot(db)
    return generate_alerts(internships, compliance, today, students=students, preceptor_ids=preceptor_ids)


def get_clinical_overview(db: Session, today: Optional[date] = None) -> ClinicalOverviewResponse:
    """Lignes de la vue d'ensemble + flux d'alertes, calculés sur le même instantané."""
    today = today or date.today()
    students, internships, compliance, preceptor_ids = _load_snapshot(db)

    alerts = generate_alerts(internships, compliance, today, students=students, preceptor_ids=preceptor_ids)
    rows = build_overview(students, internships, compliance, today, preceptor_ids=preceptor_ids, alerts=alerts)

    return ClinicalOverviewResponse(generated_for=today, students=rows, alerts=alerts)
