"""
Schémas Pydantic de la vue d'ensemble clinique (une ligne par étudiant).
"""

import uuid
from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from app.models.enums import ClinicalStatus, MilestoneType, PhaseStatus
from app.schemas.alert import AlertFeed


class StudentOverviewRow(BaseModel):
    student_id: uuid.UUID
    first_name: str
    last_name: str
    email: Optional[str]
    program: Optional[str]
    cohort_id: Optional[uuid.UUID]
    internship_id: Optional[uuid.UUID] = None
    current_phase: Optional[str] = None   # valeur brute, éventuellement inconnue
    status: PhaseStatus
    clinical_status: ClinicalStatus
    next_due_date: Optional[date] = None
    next_due_type: Optional[MilestoneType] = None
    cleared_for_nremt: bool = False
    nremt_eligible: bool = False
    missing_doc_count: int = 0
    expiring_doc_count: int = 0
    critical_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    needs_review: bool = False


class ClinicalOverviewResponse(BaseModel):
    generated_for: date
    students: List[StudentOverviewRow]
    alerts: AlertFeed
