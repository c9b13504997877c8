"""
Schémas Pydantic pour la conformité documentaire et l'agrégat de préparation (readiness).
"""

import uuid
from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from app.models.enums import DocType


class ExpiringDoc(BaseModel):
    doc_type: DocType
    expiration_date: date


class Readiness(BaseModel):
    """Agrégat documents + clearances d'un étudiant."""
    nremt_eligible: bool
    missing_docs: List[DocType] = []        # requis, jamais complétés ou expirés
    expiring_docs: List[ExpiringDoc] = []   # valides mais expirant dans les 30 jours
    missing_clearances: List[str] = []      # clearances du stage encore à False


class ComplianceRecordResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    doc_type: str
    completed: bool
    completion_date: Optional[date]
    expiration_date: Optional[date]
    notes: Optional[str]

    model_config = {"from_attributes": True}


class ComplianceUpdate(BaseModel):
    """Coche / décoche un document (PUT /compliance/students/{id}/{doc_type})."""
    completed: bool
    completion_date: Optional[date] = None
    expiration_date: Optional[date] = None
    notes: Optional[str] = None


class StudentComplianceResponse(BaseModel):
    student_id: uuid.UUID
    records: List[ComplianceRecordResponse]
    readiness: Readiness


class LegacyMigrationResult(BaseModel):
    """Rapport de migration d'une ligne de l'ancien schéma « large »."""
    student_id: uuid.UUID
    created: int
    updated: int
