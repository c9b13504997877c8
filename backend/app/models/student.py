"""
Modèles SQLAlchemy pour les étudiants et leurs cohortes.
Un étudiant n'est jamais supprimé : il passe en statut archived avec sa cohorte.
"""

import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class Cohort(Base):
    __tablename__ = "cohorts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cohort_number = Column(String(20), nullable=False)
    program = Column(String(20), nullable=False)  # PMD, AEMT, EMT
    semester = Column(String(20), nullable=True)
    start_date = Column(Date, nullable=True)
    is_archived = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())


class Student(Base):
    __tablename__ = "students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    program = Column(String(20), nullable=False, default="PMD")
    cohort_id = Column(UUID(as_uuid=True), ForeignKey("cohorts.id"), nullable=True)
    status = Column(String(20), default="active")  # active, archived
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
