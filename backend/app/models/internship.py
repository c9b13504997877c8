"""
Modèle SQLAlchemy pour le suivi des stages terrain (student_internships).

Cycle de vie : pre_internship → phase_1_mentorship → phase_2_evaluation → completed.
La prolongation (is_extended) suspend la progression sans changer de phase ;
le retrait (is_withdrawn) est terminal.
Le statut (on_track, at_risk, ...) n'est pas stocké : il est dérivé par
app.services.phase_rules à chaque lecture.
"""

import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class StudentInternship(Base):
    __tablename__ = "student_internships"
    __table_args__ = (
        # Un seul stage non retiré par étudiant
        Index(
            "idx_internships_active_student",
            "student_id",
            unique=True,
            postgresql_where=text("is_withdrawn = false"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    cohort_id = Column(UUID(as_uuid=True), ForeignKey("cohorts.id"), nullable=True)

    # Affectation
    preceptor_id = Column(UUID(as_uuid=True), ForeignKey("field_preceptors.id"), nullable=True)
    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=True)
    agency_name = Column(String(255), nullable=True)  # dénormalisé pour l'affichage
    shift_type = Column(String(20), default="12_hour")  # 12_hour, 24_hour, 48_hour

    # Dates clés
    placement_date = Column(Date, nullable=True)
    orientation_date = Column(Date, nullable=True)
    orientation_completed = Column(Boolean, default=False)
    internship_start_date = Column(Date, nullable=True)  # premier shift
    expected_end_date = Column(Date, nullable=True)
    actual_end_date = Column(Date, nullable=True)

    current_phase = Column(String(30), default="pre_internship")

    # Phase 1
    phase_1_start_date = Column(Date, nullable=True)
    phase_1_end_date = Column(Date, nullable=True)
    phase_1_eval_scheduled = Column(Date, nullable=True)
    phase_1_eval_completed = Column(Boolean, default=False)
    phase_1_eval_notes = Column(Text, nullable=True)

    # Phase 2
    phase_2_start_date = Column(Date, nullable=True)
    phase_2_end_date = Column(Date, nullable=True)
    phase_2_eval_scheduled = Column(Date, nullable=True)
    phase_2_eval_completed = Column(Boolean, default=False)
    phase_2_eval_notes = Column(Text, nullable=True)

    # Clearances
    background_check_completed = Column(Boolean, default=False)
    drug_screen_completed = Column(Boolean, default=False)
    immunizations_verified = Column(Boolean, default=False)
    liability_form_completed = Column(Boolean, default=False)
    cpr_card_verified = Column(Boolean, default=False)
    uniform_issued = Column(Boolean, default=False)
    badge_issued = Column(Boolean, default=False)

    # NREMT et examens
    cleared_for_nremt = Column(Boolean, default=False)
    nremt_clearance_date = Column(Date, nullable=True)
    course_completion_date = Column(Date, nullable=True)
    written_exam_date = Column(Date, nullable=True)
    written_exam_passed = Column(Boolean, default=False)
    psychomotor_exam_date = Column(Date, nullable=True)
    psychomotor_exam_passed = Column(Boolean, default=False)

    # Clôture (SNHD : dossier terrain et attestation de fin de cours séparés)
    snhd_field_docs_submitted_at = Column(Date, nullable=True)
    snhd_course_completion_submitted_at = Column(Date, nullable=True)
    closeout_meeting_date = Column(Date, nullable=True)
    closeout_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(String(255), nullable=True)

    # Prolongation
    is_extended = Column(Boolean, default=False)
    extension_reason = Column(Text, nullable=True)
    extension_date = Column(Date, nullable=True)
    extension_eval_date = Column(Date, nullable=True)
    extension_eval_completed = Column(Boolean, default=False)

    # Retrait
    is_withdrawn = Column(Boolean, default=False)
    withdrawn_date = Column(Date, nullable=True)
    withdrawal_reason = Column(Text, nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
