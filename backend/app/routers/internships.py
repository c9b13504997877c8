"""
Router pour les stages terrain.
Placement, mise à jour, état dérivé, transitions de phase, prolongation,
retrait et clôture.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.internship import (
    CloseoutChecklist,
    CloseoutComplete,
    ExtensionCreate,
    InternshipCreate,
    InternshipResponse,
    InternshipUpdate,
    WithdrawalCreate,
)
from app.schemas.phase import PhaseAdvance, PhaseState
from app.services import internship_service
from app.services.permissions import require_permission
from app.services.phase_rules import DataIntegrityError

router = APIRouter(prefix="/api/v1/internships", tags=["Stages"])


def _http_error(e: ValueError, conflict_status: int = 409) -> HTTPException:
    """« introuvable » → 404, toute autre règle métier → conflict_status."""
    msg = str(e)
    if "introuvable" in msg:
        return HTTPException(status_code=404, detail=msg)
    return HTTPException(status_code=conflict_status, detail=msg)


@router.post(
    "",
    response_model=InternshipResponse,
    status_code=201,
    summary="Placer un étudiant en stage",
    dependencies=[Depends(require_permission("manage_internships"))],
)
def create_internship(data: InternshipCreate, db: Session = Depends(get_db)):
    """
    Crée le stage d'un étudiant (phase pre_internship).
    Un étudiant ne peut avoir qu'un seul stage non retiré (409 sinon).
    """
    try:
        return internship_service.create_internship(db, data)
    except ValueError as e:
        raise _http_error(e)


@router.get(
    "/{internship_id}",
    response_model=InternshipResponse,
    summary="Détail d'un stage",
    dependencies=[Depends(require_permission("view_overview"))],
)
def get_internship(internship_id: uuid.UUID, db: Session = Depends(get_db)):
    internship = internship_service.get_internship(db, internship_id)
    if internship is None:
        raise HTTPException(status_code=404, detail="Stage introuvable.")
    return internship


@router.put(
    "/{internship_id}",
    response_model=InternshipResponse,
    summary="Modifier un stage",
    dependencies=[Depends(require_permission("manage_internships"))],
)
def update_internship(internship_id: uuid.UUID, data: InternshipUpdate, db: Session = Depends(get_db)):
    """
    Met à jour les dates, clearances et indicateurs d'un stage.
    La phase ne se modifie pas ici : utiliser POST /{id}/advance.
    """
    try:
        internship = internship_service.update_internship(db, internship_id, data)
    except ValueError as e:
        raise _http_error(e, conflict_status=400)
    if internship is None:
        raise HTTPException(status_code=404, detail="Stage introuvable.")
    return internship


@router.get(
    "/{internship_id}/phase-state",
    response_model=PhaseState,
    summary="État dérivé d'un stage",
    dependencies=[Depends(require_permission("view_overview"))],
)
def get_phase_state(internship_id: uuid.UUID, db: Session = Depends(get_db)):
    """
    Retourne le statut dérivé (on_track, at_risk, extended, ...), les problèmes
    bloquants et la prochaine échéance. 409 si la phase enregistrée est inconnue.
    """
    try:
        return internship_service.get_phase_state(db, internship_id)
    except DataIntegrityError as e:
        raise HTTPException(status_code=409, detail=f"Enregistrement à revoir : {e}")
    except ValueError as e:
        raise _http_error(e)


@router.post(
    "/{internship_id}/advance",
    response_model=InternshipResponse,
    summary="Passer à la phase suivante",
    dependencies=[Depends(require_permission("manage_internships"))],
)
def advance_phase(internship_id: uuid.UUID, data: PhaseAdvance, db: Session = Depends(get_db)):
    """Applique une transition de la table des phases. 409 avec les raisons si elle est refusée."""
    try:
        return internship_service.advance_phase(db, internship_id, data.target_phase)
    except DataIntegrityError as e:
        raise HTTPException(status_code=409, detail=f"Enregistrement à revoir : {e}")
    except ValueError as e:
        raise _http_error(e)


@router.post(
    "/{internship_id}/extend",
    response_model=InternshipResponse,
    summary="Prolonger un stage",
    dependencies=[Depends(require_permission("manage_internships"))],
)
def extend_internship(internship_id: uuid.UUID, data: ExtensionCreate, db: Session = Depends(get_db)):
    try:
        return internship_service.extend_internship(db, internship_id, data)
    except ValueError as e:
        raise _http_error(e)


@router.post(
    "/{internship_id}/withdraw",
    response_model=InternshipResponse,
    summary="Retirer un stage",
    dependencies=[Depends(require_permission("manage_internships"))],
)
def withdraw_internship(internship_id: uuid.UUID, data: WithdrawalCreate, db: Session = Depends(get_db)):
    try:
        return internship_service.withdraw_internship(db, internship_id, data)
    except ValueError as e:
        raise _http_error(e)


@router.get(
    "/{internship_id}/closeout",
    response_model=CloseoutChecklist,
    summary="Liste de clôture d'un stage",
    dependencies=[Depends(require_permission("manage_internships"))],
)
def get_closeout_checklist(internship_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return internship_service.get_closeout_checklist(db, internship_id)
    except ValueError as e:
        raise _http_error(e)


@router.post(
    "/{internship_id}/closeout",
    response_model=InternshipResponse,
    summary="Finaliser la clôture d'un stage",
)
def complete_closeout(
    internship_id: uuid.UUID,
    data: CloseoutComplete,
    db: Session = Depends(get_db),
    role: str = Depends(require_permission("complete_closeout")),
):
    """
    Marque le stage comme terminé. Chaque élément de la liste doit être coché
    ou validé manuellement via `overrides` (400 sinon).
    """
    try:
        return internship_service.complete_closeout(
            db, internship_id, data.overrides, completed_by=data.completed_by or role,
        )
    except DataIntegrityError as e:
        raise HTTPException(status_code=409, detail=f"Enregistrement à revoir : {e}")
    except ValueError as e:
        raise _http_error(e, conflict_status=400)
