"""
Planificateur APScheduler pour le digest quotidien des alertes critiques.

Le job s'exécute chaque jour à ALERT_DIGEST_HOUR et envoie par email les alertes
critiques apparues depuis le dernier envoi. Désactivable via SCHEDULER_ENABLED.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import settings
from app.database import SessionLocal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _send_alert_digest_scheduled() -> None:
    """
    Tâche planifiée : recalcule les alertes et notifie les nouvelles alertes critiques.
    Import local pour éviter les imports circulaires.
    """
    from app.services.alert_notification_service import notify_new_critical_alerts

    db = SessionLocal()
    try:
        result = notify_new_critical_alerts(db)
        logger.info(
            "Digest quotidien : %d critiques, %d nouvelles, envoyé=%s, %d erreurs",
            result.critical_count,
            result.new_count,
            result.sent,
            len(result.errors),
        )
    except Exception as exc:
        logger.error("Erreur lors du digest quotidien des alertes : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler désactivé (SCHEDULER_ENABLED=false).")
        return
    scheduler.add_job(
        _send_alert_digest_scheduled,
        trigger="cron",
        hour=settings.ALERT_DIGEST_HOUR,
        minute=0,
        id="alert_digest_daily",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré, digest des alertes critiques chaque jour à %dh.", settings.ALERT_DIGEST_HOUR)


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
