"""
Router pour la conformité documentaire des étudiants.
GET /api/v1/compliance/students/{student_id}             : documents + agrégat de préparation
PUT /api/v1/compliance/students/{student_id}/{doc_type}  : cocher / décocher un document
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.compliance import ComplianceRecordResponse, ComplianceUpdate, StudentComplianceResponse
from app.services import compliance_service
from app.services.permissions import require_permission

router = APIRouter(prefix="/api/v1/compliance", tags=["Conformité"])


@router.get(
    "/students/{student_id}",
    response_model=StudentComplianceResponse,
    summary="Documents de conformité d'un étudiant",
    dependencies=[Depends(require_permission("view_compliance"))],
)
def get_student_compliance(student_id: uuid.UUID, db: Session = Depends(get_db)):
    """Retourne les documents enregistrés, les documents manquants ou expirant et l'éligibilité NREMT."""
    try:
        return compliance_service.get_student_compliance(db, student_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put(
    "/students/{student_id}/{doc_type}",
    response_model=ComplianceRecordResponse,
    summary="Mettre à jour un document de conformité",
    dependencies=[Depends(require_permission("manage_compliance"))],
)
def set_document_status(
    student_id: uuid.UUID,
    doc_type: str,
    data: ComplianceUpdate,
    db: Session = Depends(get_db),
):
    """
    Coche ou décoche un document (mmr, tb, bls, ...). La ligne est créée si absente.
    Type de document inconnu → 400.
    """
    try:
        return compliance_service.set_document_status(db, student_id, doc_type, data)
    except ValueError as e:
        msg = str(e)
        if "introuvable" in msg:
            raise HTTPException(status_code=404, detail=msg)
        raise HTTPException(status_code=400, detail=msg)
