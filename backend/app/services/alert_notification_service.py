"""
Service d'orchestration du digest des alertes critiques.

Flux :
  1. Recalculer le flux d'alertes à la date du jour
  2. Retirer du suivi les clés des alertes critiques résolues, puis écarter celles déjà notifiées
     (table alert_notifications, par Alert.key)
  3. Envoyer un seul email aux instructeurs responsables + destinataires configurés
  4. Enregistrer les clés envoyées (uniquement en cas de succès)

Idempotent : un second appel le même jour n'envoie rien si aucune nouvelle alerte
critique n'est apparue. Une alerte résolue puis réapparue est notifiée de nouveau.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.alert_notification import AlertNotification
from app.models.enums import Role
from app.models.user import User
from app.schemas.notification import AlertDigestResult
from app.services import overview_service
from app.services.email_service import send_alert_digest_email

logger = logging.getLogger(__name__)

DIGEST_ROLES = [Role.ADMIN.value, Role.LEAD_INSTRUCTOR.value]


def get_digest_recipients(db: Session) -> List[str]:
    """Instructeurs actifs (admin, lead_instructor) + ALERT_DIGEST_RECIPIENTS, dédupliqués."""
    emails = db.execute(
        select(User.email).where(
            User.role.in_(DIGEST_ROLES),
            User.is_active.is_(True),
        )
    ).scalars().all()
    return sorted({e.strip().lower() for e in [*emails, *settings.ALERT_DIGEST_RECIPIENTS] if e and e.strip()})


def notify_new_critical_alerts(db: Session, today: Optional[date] = None) -> AlertDigestResult:
    """
    Envoie le digest des alertes critiques pas encore notifiées.
    Une erreur SMTP est journalisée et rapportée : aucune clé n'est alors enregistrée,
    les mêmes alertes seront proposées au prochain passage.
    """
    today = today or date.today()
    critical = overview_service.get_alert_feed(db, today).critical
    keys = [a.key for a in critical]

    stored = set(db.execute(select(AlertNotification.alert_key)).scalars().all())
    resolved = sorted(stored - set(keys))
    if resolved:
        db.execute(delete(AlertNotification).where(AlertNotification.alert_key.in_(resolved)))
        db.commit()
        logger.info("Digest : %d alertes critiques résolues retirées du suivi", len(resolved))

    new_alerts = [a for a in critical if a.key not in stored]

    result = AlertDigestResult(
        critical_count=len(critical),
        new_count=len(new_alerts),
        already_notified_count=len(critical) - len(new_alerts),
        resolved_count=len(resolved),
        recipients=[],
        sent=False,
    )
    if not new_alerts:
        logger.info("Digest : aucune nouvelle alerte critique (%d déjà notifiées)", result.already_notified_count)
        return result

    result.recipients = get_digest_recipients(db)
    if not result.recipients:
        logger.warning("Digest : %d nouvelles alertes critiques mais aucun destinataire", len(new_alerts))
        return result

    try:
        send_alert_digest_email(result.recipients, new_alerts, today)
    except Exception as exc:
        error_msg = f"Erreur envoi digest : {exc}"
        result.errors.append(error_msg)
        logger.error(error_msg)
        return result

    # Les clés ne sont enregistrées qu'après succès de l'envoi
    for alert in new_alerts:
        db.add(
            AlertNotification(
                alert_key=alert.key,
                student_id=str(alert.student.id),
                severity=alert.severity.value,
            )
        )
    db.commit()

    result.sent = True
    logger.info(
        "Digest envoyé : %d nouvelles alertes critiques, %d destinataires",
        len(new_alerts), len(result.recipients),
    )
    return result
