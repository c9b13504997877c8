"""
Modèle SQLAlchemy pour les documents de conformité (schéma normalisé).
Une ligne par (étudiant, type de document). Jamais supprimée : updated_at sert d'historique.
"""

import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class ComplianceRecord(Base):
    __tablename__ = "student_compliance_records"
    __table_args__ = (
        UniqueConstraint("student_id", "doc_type", name="uq_compliance_student_doc_type"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    doc_type = Column(String(50), nullable=False)  # valeur de DocType
    completed = Column(Boolean, default=False)
    completion_date = Column(Date, nullable=True)
    expiration_date = Column(Date, nullable=True)  # NULL = n'expire pas
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
