"""
Service métier pour la conformité documentaire des étudiants.

Les documents sont stockés une ligne par (étudiant, DocType) dans
student_compliance_records. L'ancien schéma « large » (une colonne booléenne par
document) n'est plus lu qu'à travers migrate_legacy_row.
"""

import logging
import uuid
from datetime import date
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.compliance import ComplianceRecord
from app.models.enums import LEGACY_COMPLIANCE_COLUMNS
from app.models.internship import StudentInternship
from app.models.student import Student
from app.schemas.compliance import (
    ComplianceRecordResponse,
    ComplianceUpdate,
    LegacyMigrationResult,
    Readiness,
    StudentComplianceResponse,
)
from app.services.readiness import compute_readiness, parse_doc_type

logger = logging.getLogger(__name__)


def _get_student_or_raise(db: Session, student_id: uuid.UUID) -> Student:
    student = db.get(Student, student_id)
    if student is None:
        raise ValueError("Étudiant introuvable.")
    return student


def _load_records(db: Session, student_id: uuid.UUID):
    return db.execute(
        select(ComplianceRecord)
        .where(ComplianceRecord.student_id == student_id)
        .order_by(ComplianceRecord.doc_type)
    ).scalars().all()


def _load_active_internship(db: Session, student_id: uuid.UUID) -> Optional[StudentInternship]:
    return db.execute(
        select(StudentInternship).where(
            StudentInternship.student_id == student_id,
            StudentInternship.is_withdrawn.is_(False),
        )
    ).scalar()


def get_student_readiness(
    db: Session,
    student_id: uuid.UUID,
    today: Optional[date] = None,
    internship: Optional[StudentInternship] = None,
) -> Readiness:
    """
    Agrégat de préparation d'un étudiant : documents + clearances de son stage actif.
    `internship` évite une requête quand l'appelant l'a déjà chargé.
    """
    today = today or date.today()
    records = _load_records(db, student_id)
    if internship is None:
        internship = _load_active_internship(db, student_id)
    return compute_readiness(records, today, internship)


def get_student_compliance(
    db: Session,
    student_id: uuid.UUID,
    today: Optional[date] = None,
) -> StudentComplianceResponse:
    """Documents enregistrés et agrégat de préparation. Lève ValueError si l'étudiant est introuvable."""
    today = today or date.today()
    _get_student_or_raise(db, student_id)

    records = _load_records(db, student_id)
    internship = _load_active_internship(db, student_id)

    return StudentComplianceResponse(
        student_id=student_id,
        records=[ComplianceRecordResponse.model_validate(r) for r in records],
        readiness=compute_readiness(records, today, internship),
    )


def set_document_status(
    db: Session,
    student_id: uuid.UUID,
    doc_type: str,
    data: ComplianceUpdate,
    today: Optional[date] = None,
) -> ComplianceRecord:
    """
    Coche ou décoche un document (création de la ligne si absente).

    Décocher efface la date de complétion mais conserve l'expiration : recocher
    le même document retrouve exactement la même classification.
    """
    today = today or date.today()
    parsed = parse_doc_type(doc_type)
    if parsed is None:
        raise ValueError(f"Type de document inconnu : {doc_type}.")
    _get_student_or_raise(db, student_id)

    record = db.execute(
        select(ComplianceRecord).where(
            ComplianceRecord.student_id == student_id,
            ComplianceRecord.doc_type == parsed.value,
        )
    ).scalar()

    if record is None:
        record = ComplianceRecord(student_id=student_id, doc_type=parsed.value)
        db.add(record)

    record.completed = data.completed
    if data.completed:
        record.completion_date = data.completion_date or record.completion_date or today
    else:
        record.completion_date = None
    if data.expiration_date is not None:
        record.expiration_date = data.expiration_date
    if data.notes is not None:
        record.notes = data.notes

    db.commit()
    db.refresh(record)
    logger.info(
        "Document %s de l'étudiant %s : %s",
        parsed.value, student_id, "complété" if data.completed else "non complété",
    )
    return record


def migrate_legacy_row(db: Session, student_id: uuid.UUID, row: Mapping) -> LegacyMigrationResult:
    """
    Reporte une ligne de l'ancien schéma « large » (mmr_complete, tb_expiration, ...)
    dans student_compliance_records. Les colonnes absentes de la ligne sont ignorées ;
    relancer la migration met à jour les lignes existantes sans doublon.
    """
    _get_student_or_raise(db, student_id)
    existing = {r.doc_type: r for r in _load_records(db, student_id)}

    created = 0
    updated = 0
    for doc_type, (complete_column, expiration_column) in LEGACY_COMPLIANCE_COLUMNS.items():
        if complete_column not in row:
            continue
        record = existing.get(doc_type.value)
        if record is None:
            record = ComplianceRecord(student_id=student_id, doc_type=doc_type.value)
            db.add(record)
            created += 1
        else:
            updated += 1
        record.completed = bool(row[complete_column])
        if expiration_column is not None:
            record.expiration_date = row.get(expiration_column)

    db.commit()
    logger.info(
        "Migration conformité étudiant %s : %d créés, %d mis à jour",
        student_id, created, updated,
    )
    return LegacyMigrationResult(student_id=student_id, created=created, updated=updated)
