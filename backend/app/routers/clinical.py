"""
Router de la vue d'ensemble clinique.
GET  /api/v1/clinical/overview     : une ligne par étudiant + flux d'alertes
GET  /api/v1/clinical/alerts       : flux d'alertes seul (critical / warning / info)
POST /api/v1/clinical/alerts/digest : envoi immédiat du digest des alertes critiques
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.alert import AlertFeed
from app.schemas.notification import AlertDigestResult
from app.schemas.overview import ClinicalOverviewResponse
from app.services import alert_notification_service, overview_service
from app.services.permissions import require_permission

router = APIRouter(prefix="/api/v1/clinical", tags=["Vue clinique"])


@router.get(
    "/overview",
    response_model=ClinicalOverviewResponse,
    summary="Vue d'ensemble des stages",
    dependencies=[Depends(require_permission("view_overview"))],
)
def get_overview(today: Optional[date] = None, db: Session = Depends(get_db)):
    """
    Recalcule la vue d'ensemble à la date du jour (ou `today` pour consulter un instantané).
    Un enregistrement incohérent apparaît en statut `unknown` sans bloquer les autres lignes.
    """
    return overview_service.get_clinical_overview(db, today)


@router.get(
    "/alerts",
    response_model=AlertFeed,
    summary="Flux d'alertes",
    dependencies=[Depends(require_permission("view_overview"))],
)
def get_alerts(today: Optional[date] = None, db: Session = Depends(get_db)):
    return overview_service.get_alert_feed(db, today)


@router.post(
    "/alerts/digest",
    response_model=AlertDigestResult,
    summary="Envoyer le digest des alertes critiques",
    dependencies=[Depends(require_permission("send_alert_digest"))],
)
def send_alert_digest(db: Session = Depends(get_db)):
    """
    Déclenche manuellement le digest quotidien.
    Idempotent : seules les alertes critiques jamais notifiées sont envoyées.
    """
    return alert_notification_service.notify_new_critical_alerts(db)
