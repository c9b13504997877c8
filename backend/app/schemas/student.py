"""
Schémas Pydantic pour les étudiants.
"""

import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, field_validator

PROGRAMS = ("PMD", "AEMT", "EMT")


class StudentCreate(BaseModel):
    """Schéma de création d'un étudiant (POST /students)."""
    first_name: str
    last_name: str
    email: Optional[EmailStr] = None
    program: str = "PMD"
    cohort_id: Optional[uuid.UUID] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()

    @field_validator("program")
    @classmethod
    def program_valid(cls, v: str) -> str:
        if v.upper() not in PROGRAMS:
            raise ValueError("Programme invalide (PMD, AEMT ou EMT).")
        return v.upper()


class StudentUpdate(BaseModel):
    """Schéma de mise à jour d'un étudiant (PUT /students/{id})."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    program: Optional[str] = None
    cohort_id: Optional[uuid.UUID] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> str:
        # Absent = inchangé ; null explicite refusé (colonne NOT NULL)
        if v is None or not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()

    @field_validator("program")
    @classmethod
    def program_valid(cls, v: Optional[str]) -> str:
        if v is None or v.upper() not in PROGRAMS:
            raise ValueError("Programme invalide (PMD, AEMT ou EMT).")
        return v.upper()


class StudentResponse(BaseModel):
    """Schéma de réponse pour un étudiant (GET /students)."""
    id: uuid.UUID
    first_name: str
    last_name: str
    email: Optional[str]
    program: str
    cohort_id: Optional[uuid.UUID]
    status: str
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}
