"""
Schéma Pydantic du rapport d'envoi du digest des alertes critiques.
"""

from typing import List

from pydantic import BaseModel


class AlertDigestResult(BaseModel):
    """Rapport retourné après un envoi du digest (job planifié ou appel manuel)."""
    critical_count: int
    new_count: int
    already_notified_count: int
    resolved_count: int = 0
    recipients: List[str]
    sent: bool
    errors: List[str] = []
