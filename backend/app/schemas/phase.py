"""
Schémas Pydantic produits par le moteur de règles de phases.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, computed_field

from app.models.enums import InternshipPhase, MilestoneType, PhaseStatus


class BlockingIssue(BaseModel):
    """Jalon non satisfait qui bloque la progression (en retard, ou NREMT non éligible)."""
    milestone_type: MilestoneType
    due_date: Optional[date] = None
    days_overdue: int = 0
    reason: str


class PhaseState(BaseModel):
    """Résultat de derive_phase_state pour un stage à une date donnée."""
    phase: InternshipPhase
    status: PhaseStatus
    blocking_issues: List[BlockingIssue] = []
    next_due_date: Optional[date] = None
    next_due_type: Optional[MilestoneType] = None
    # Jalons de la phase courante sans date planifiée (qualité de données, pas un retard)
    data_quality_issues: List[MilestoneType] = []
    # Incohérences de dates ou de transition : l'enregistrement doit être revu
    integrity_issues: List[str] = []
    effective_end_date: Optional[date] = None

    @computed_field
    @property
    def needs_review(self) -> bool:
        return bool(self.integrity_issues)


class PhaseAdvance(BaseModel):
    """Corps de requête pour faire avancer un stage d'une phase."""
    target_phase: InternshipPhase
