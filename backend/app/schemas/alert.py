"""
Schémas Pydantic du flux d'alertes (critical / warning / info).

Une alerte n'a pas d'identité propre : c'est une condition vraie à l'instant du calcul.
`key` est stable d'un calcul à l'autre, ce qui permet à la couche de notification
de comparer deux exécutions successives.
"""

import uuid
from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from app.models.enums import AlertSeverity, AlertType, MilestoneType


class AlertStudent(BaseModel):
    id: uuid.UUID
    first_name: str = ""
    last_name: str = ""


class Alert(BaseModel):
    key: str
    type: AlertType
    severity: AlertSeverity
    student: AlertStudent
    subject: str                       # valeur de MilestoneType, "doc:<type>" ou "clearance"
    milestone_type: Optional[MilestoneType] = None
    due_date: Optional[date] = None
    message: str
    details: str = ""
    # Identifiant navigable : l'URL est construite par la couche présentation
    link_type: str                     # internship, student
    link_id: uuid.UUID


class AlertFeed(BaseModel):
    critical: List[Alert] = []
    warning: List[Alert] = []
    info: List[Alert] = []

    def all(self) -> List[Alert]:
        return [*self.critical, *self.warning, *self.info]
