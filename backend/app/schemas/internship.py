"""
Schémas Pydantic pour les stages terrain (student_internships).
"""

import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator


class InternshipCreate(BaseModel):
    """Placement d'un étudiant chez une agence (POST /internships)."""
    student_id: uuid.UUID
    cohort_id: Optional[uuid.UUID] = None
    preceptor_id: Optional[uuid.UUID] = None
    agency_id: Optional[uuid.UUID] = None
    shift_type: str = "12_hour"
    placement_date: Optional[date] = None
    orientation_date: Optional[date] = None
    internship_start_date: Optional[date] = None
    expected_end_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("shift_type")
    @classmethod
    def shift_type_valid(cls, v: str) -> str:
        if v not in ("12_hour", "24_hour", "48_hour"):
            raise ValueError("Type de shift invalide (12_hour, 24_hour ou 48_hour).")
        return v


class InternshipUpdate(BaseModel):
    """
    Mise à jour partielle (PUT /internships/{id}).
    current_phase est volontairement absent : la phase ne change que via /advance.
    """
    preceptor_id: Optional[uuid.UUID] = None
    agency_id: Optional[uuid.UUID] = None
    shift_type: Optional[str] = None
    placement_date: Optional[date] = None
    orientation_date: Optional[date] = None
    orientation_completed: Optional[bool] = None
    internship_start_date: Optional[date] = None
    expected_end_date: Optional[date] = None
    actual_end_date: Optional[date] = None

    phase_1_start_date: Optional[date] = None
    phase_1_end_date: Optional[date] = None
    phase_1_eval_scheduled: Optional[date] = None
    phase_1_eval_completed: Optional[bool] = None
    phase_1_eval_notes: Optional[str] = None
    phase_2_start_date: Optional[date] = None
    phase_2_end_date: Optional[date] = None
    phase_2_eval_scheduled: Optional[date] = None
    phase_2_eval_completed: Optional[bool] = None
    phase_2_eval_notes: Optional[str] = None

    background_check_completed: Optional[bool] = None
    drug_screen_completed: Optional[bool] = None
    immunizations_verified: Optional[bool] = None
    liability_form_completed: Optional[bool] = None
    cpr_card_verified: Optional[bool] = None
    uniform_issued: Optional[bool] = None
    badge_issued: Optional[bool] = None

    cleared_for_nremt: Optional[bool] = None
    nremt_clearance_date: Optional[date] = None
    course_completion_date: Optional[date] = None
    written_exam_date: Optional[date] = None
    written_exam_passed: Optional[bool] = None
    psychomotor_exam_date: Optional[date] = None
    psychomotor_exam_passed: Optional[bool] = None

    snhd_field_docs_submitted_at: Optional[date] = None
    snhd_course_completion_submitted_at: Optional[date] = None
    closeout_meeting_date: Optional[date] = None

    extension_eval_date: Optional[date] = None
    extension_eval_completed: Optional[bool] = None
    notes: Optional[str] = None


class InternshipResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    cohort_id: Optional[uuid.UUID]
    preceptor_id: Optional[uuid.UUID]
    agency_id: Optional[uuid.UUID]
    agency_name: Optional[str]
    shift_type: Optional[str]
    current_phase: Optional[str]
    placement_date: Optional[date]
    orientation_date: Optional[date]
    internship_start_date: Optional[date]
    expected_end_date: Optional[date]
    actual_end_date: Optional[date]
    phase_1_eval_scheduled: Optional[date]
    phase_1_eval_completed: Optional[bool]
    phase_2_eval_scheduled: Optional[date]
    phase_2_eval_completed: Optional[bool]
    cleared_for_nremt: Optional[bool]
    course_completion_date: Optional[date]
    closeout_meeting_date: Optional[date]
    closeout_completed: Optional[bool]
    completed_at: Optional[datetime]
    completed_by: Optional[str]
    is_extended: Optional[bool]
    extension_eval_date: Optional[date]
    extension_eval_completed: Optional[bool]
    is_withdrawn: Optional[bool]
    withdrawn_date: Optional[date]

    model_config = {"from_attributes": True}


class ExtensionCreate(BaseModel):
    """Prolongation d'un stage (POST /internships/{id}/extend)."""
    reason: str
    extension_eval_date: Optional[date] = None

    @field_validator("reason")
    @classmethod
    def reason_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le motif de prolongation est obligatoire.")
        return v.strip()


class WithdrawalCreate(BaseModel):
    """Retrait d'un stage (POST /internships/{id}/withdraw)."""
    reason: str
    withdrawn_date: Optional[date] = None

    @field_validator("reason")
    @classmethod
    def reason_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le motif de retrait est obligatoire.")
        return v.strip()


class CloseoutItem(BaseModel):
    key: str
    label: str
    checked: bool


class CloseoutChecklist(BaseModel):
    internship_id: uuid.UUID
    items: List[CloseoutItem]
    ready: bool


class CloseoutComplete(BaseModel):
    """
    Finalisation de la clôture (POST /internships/{id}/closeout).
    overrides : clé d'élément → True pour valider manuellement un élément non coché.
    """
    overrides: Dict[str, bool] = {}
    completed_by: Optional[str] = None
