"""
Router pour les étudiants.
Listage (GET /api/v1/students), création (POST), mise à jour (PUT /{id}),
archivage (DELETE /{id}) : un étudiant n'est jamais supprimé.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.student import Student
from app.schemas.student import StudentCreate, StudentResponse, StudentUpdate
from app.services.permissions import require_permission

router = APIRouter(prefix="/api/v1/students", tags=["Étudiants"])


@router.get(
    "",
    response_model=List[StudentResponse],
    summary="Lister les étudiants actifs",
    dependencies=[Depends(require_permission("view_overview"))],
)
def list_students(db: Session = Depends(get_db)):
    """Retourne les étudiants non archivés triés alphabétiquement par nom puis prénom."""
    students = db.execute(
        select(Student)
        .where(Student.status != "archived")
        .order_by(Student.last_name, Student.first_name)
    ).scalars().all()
    return students


@router.post(
    "",
    response_model=StudentResponse,
    status_code=201,
    summary="Créer un étudiant",
    dependencies=[Depends(require_permission("manage_roster"))],
)
def create_student(data: StudentCreate, db: Session = Depends(get_db)):
    """Crée un étudiant actif."""
    student = Student(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        program=data.program,
        cohort_id=data.cohort_id,
        status="active",
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Modifier un étudiant",
    dependencies=[Depends(require_permission("manage_roster"))],
)
def update_student(student_id: uuid.UUID, data: StudentUpdate, db: Session = Depends(get_db)):
    """Met à jour les champs fournis d'un étudiant. Les champs absents ne sont pas modifiés."""
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Étudiant introuvable.")

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(student, field, value)

    db.commit()
    db.refresh(student)
    return student


@router.delete(
    "/{student_id}",
    status_code=204,
    summary="Archiver un étudiant",
    dependencies=[Depends(require_permission("manage_roster"))],
)
def archive_student(student_id: uuid.UUID, db: Session = Depends(get_db)):
    """
    Archive un étudiant (suppression logique, status → archived).
    Ses stages et documents sont conservés pour l'historique.
    """
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Étudiant introuvable.")

    student.status = "archived"
    db.commit()
